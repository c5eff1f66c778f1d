from sitepay.domain.advance import AdvancePayment
from sitepay.payroll.deductions import (
    DEFAULT_CONFIG,
    AdvanceIndex,
    build_breakdown,
    build_label_map,
    deduplicate_records,
    load_payroll_config,
    resolve_deductions,
    sanitize_config,
    save_payroll_config,
)
from sitepay.store import SETTINGS


def advance(total=0, **fields):
    fields.setdefault("worker_id", "w1")
    fields.setdefault("year_month", "2024-03")
    return AdvancePayment(total_deduction=total, **fields)


def test_empty_records_give_empty_breakdown():
    breakdown = build_breakdown([])
    assert breakdown.total == 0
    assert breakdown.has_data is False
    assert breakdown.lines == []


def test_dedup_keeps_larger_total_per_team():
    small = advance(10000, team_id="t1", accommodation=10000)
    large = advance(50000, team_id="t1", accommodation=50000)
    other = advance(3000, team_id="t2", gloves=3000)
    kept = deduplicate_records([large, small, other])
    assert kept == [large, other]


def test_dedup_tie_goes_to_later_record():
    first = advance(5000, team_id="t1", gloves=5000)
    second = advance(5000, team_id="t1", fines=5000)
    assert deduplicate_records([first, second]) == [second]


def test_records_without_team_share_one_group():
    a = advance(1000, gloves=1000)
    b = advance(2000, team_id="  ", gloves=2000)
    assert deduplicate_records([a, b]) == [b]


def test_breakdown_lines_and_totals():
    records = [
        advance(80000, team_id="t1", accommodation=50000, gloves=0, items={"safety_shoes": 10000, "meal": 20000}),
        advance(5000, team_id="t2", accommodation=5000),
    ]
    breakdown = build_breakdown(records, {"meal": "식대"})
    assert [(l.label, l.amount) for l in breakdown.standard_lines] == [("숙소비", 55000)]
    # additional lines sorted by amount, mapped labels where known
    assert [(l.label, l.amount) for l in breakdown.additional_lines] == [("식대", 20000), ("safety_shoes", 10000)]
    assert breakdown.total_standard == 55000
    assert breakdown.total_additional == 30000
    assert breakdown.total == 85000
    assert breakdown.has_data is True


def test_non_numeric_amounts_count_as_zero():
    record = advance(0, accommodation=1000, items={"bad": "abc", "nan": float("nan"), "neg": -500})
    breakdown = build_breakdown([record])
    assert breakdown.total == 1000
    assert breakdown.additional_lines == []


def test_lookup_prefers_team_records_then_worker_records():
    team_record = advance(1000, team_id="t1", gloves=1000)
    other_team = advance(7000, team_id="t2", fines=7000)
    index = AdvanceIndex([team_record, other_team])
    assert index.lookup("w1", "t1") == [team_record]
    # no record for t3: every record of the worker, one per team after dedup
    assert resolve_deductions(index, "w1", "t3").total == 8000
    assert resolve_deductions(index, "nobody", "t1").has_data is False


def test_resolution_is_idempotent():
    index = AdvanceIndex([advance(50000, team_id="t1", accommodation=50000)])
    assert resolve_deductions(index, "w1", "t1") == resolve_deductions(index, "w1", "t1")


def test_label_map_keeps_standard_labels_and_adds_custom():
    labels = build_label_map(sanitize_config({"deduction_items": [{"id": "meal", "label": "식대"}]}).deduction_items)
    assert labels["accommodation"] == "숙소비"
    assert labels["meal"] == "식대"


def test_invalid_config_falls_back_to_defaults():
    assert sanitize_config(None) == DEFAULT_CONFIG
    assert sanitize_config({"deduction_items": "nope"}) == DEFAULT_CONFIG
    cleaned = sanitize_config({"deduction_items": [{"id": "", "label": "x"}, {"id": "meal", "label": "식대", "order": "1"}]})
    assert [(i.id, i.order, i.is_active) for i in cleaned.deduction_items] == [("meal", 0, True)]


def test_payroll_config_round_trip_through_settings(store):
    assert load_payroll_config(store) == DEFAULT_CONFIG
    config = sanitize_config({"deduction_items": [{"id": "meal", "label": "식대", "order": 3, "is_active": False}]})
    save_payroll_config(store, config)
    assert store.get(SETTINGS, "payroll_config_v1")["deduction_items"][0]["label"] == "식대"
    assert load_payroll_config(store) == config


def test_blank_standard_field_counts_as_zero():
    record = AdvancePayment(worker_id="w1", year_month="2024-03",
                            accommodation="50000", gloves="", fines="abc", total_deduction="")
    assert (record.accommodation, record.gloves, record.fines, record.total_deduction) == (50000, 0, 0, 0)
    assert record.compute_total() == 50000
