import pytest

from sitepay.domain.daily_report import DailyReport, DailyReportEntry
from sitepay.domain.reference import Site, Team, Worker
from sitepay.payroll.aggregator import NO_TEAM, aggregate_reports, month_bounds
from sitepay.store import ReferenceData


def make_ref(**overrides):
    worker = Worker(id="w1", name="김철수", team_id="t1", team_name="1팀",
                    company_id="c1", company_name="다원건설", unit_price=150000, pay_model="monthly")
    ref = dict(
        workers=[worker],
        teams=[Team(id="t1", name="1팀", company_id="c1", company_name="다원건설")],
        sites=[Site(id="s1", name="강남현장", constructor_company_id="c9")],
    )
    ref.update(overrides)
    return ReferenceData(**ref)


def report(date, *entries, **fields):
    return DailyReport(date=date, site_id="s1", workers=list(entries), **fields)


def test_sums_man_days_and_gross():
    ref = make_ref()
    reports = [
        report("2024-03-04", DailyReportEntry(worker_id="w1", man_day=1.0)),
        report("2024-03-05", DailyReportEntry(worker_id="w1", man_day=0.5)),
    ]
    result = aggregate_reports(reports, ref)
    agg = result.aggregates["w1__t1"]
    assert float(agg.man_day) == 1.5
    assert float(agg.gross_amount) == 225000
    assert agg.collapsed_unit_price() == 150000
    assert [e.site_name for e in agg.work_entries] == ["강남현장", "강남현장"]


def test_decimal_accumulation_has_no_float_drift():
    ref = make_ref()
    reports = [report(f"2024-03-0{d}", DailyReportEntry(worker_id="w1", man_day=0.1, unit_price=100000))
               for d in (1, 2, 3)]
    agg = aggregate_reports(reports, ref).aggregates["w1__t1"]
    assert float(agg.man_day) == 0.3
    assert float(agg.gross_amount) == 30000


def test_other_pay_models_are_excluded():
    ref = make_ref()
    reports = [report("2024-03-04",
                      DailyReportEntry(worker_id="w1", man_day=1, pay_model="daily"),
                      DailyReportEntry(worker_id="w1", man_day=1))]
    agg = aggregate_reports(reports, ref).aggregates["w1__t1"]
    assert float(agg.man_day) == 1


def test_unknown_workers_are_collected():
    result = aggregate_reports([report("2024-03-04", DailyReportEntry(worker_id="ghost", man_day=1))], make_ref())
    assert result.aggregates == {}
    assert result.unknown_workers == {"ghost"}


def test_team_falls_back_to_report_team():
    ref = make_ref(workers=[Worker(id="w1", name="김철수", unit_price=100000, pay_model="monthly")])
    reports = [report("2024-03-04", DailyReportEntry(worker_id="w1", man_day=1), team_id="t1")]
    agg = aggregate_reports(reports, ref).aggregates["w1__t1"]
    assert agg.team_name == "1팀"
    # worker has no company, team does
    assert agg.company_id == "c1"


def test_team_resolved_by_report_team_name():
    ref = make_ref(workers=[Worker(id="w1", name="김철수", unit_price=100000, pay_model="monthly")])
    reports = [report("2024-03-04", DailyReportEntry(worker_id="w1", man_day=1), team_name="1 팀 (본사)")]
    assert "w1__t1" in aggregate_reports(reports, ref).aggregates


def test_unresolved_and_missing_teams_use_sentinel_keys():
    ref = make_ref(workers=[Worker(id="w1", name="김철수", unit_price=100000, pay_model="monthly")])
    reports = [
        report("2024-03-04", DailyReportEntry(worker_id="w1", man_day=1), team_name="없는 팀"),
        report("2024-03-05", DailyReportEntry(worker_id="w1", man_day=1)),
    ]
    keys = set(aggregate_reports(reports, ref).aggregates)
    assert keys == {"w1__unresolved:없는팀", f"w1__{NO_TEAM}"}


def test_company_falls_back_to_site_constructor():
    ref = make_ref(
        workers=[Worker(id="w1", name="김철수", unit_price=100000, pay_model="monthly")],
        teams=[],
    )
    agg = aggregate_reports([report("2024-03-04", DailyReportEntry(worker_id="w1", man_day=1))], ref)
    assert agg.aggregates[f"w1__{NO_TEAM}"].company_id == "c9"


def test_team_filter_includes_sub_teams():
    teams = [
        Team(id="t1", name="1팀"),
        Team(id="t1a", name="1팀-A", parent_team_id="t1"),
        Team(id="t1b", name="1팀-B", parent_team_name="1팀"),
        Team(id="t2", name="2팀"),
    ]
    workers = [Worker(id=f"w-{t.id}", name=t.name, team_id=t.id, unit_price=1, pay_model="monthly") for t in teams]
    ref = make_ref(workers=workers, teams=teams)
    entries = [DailyReportEntry(worker_id=w.id, man_day=1) for w in workers]
    result = aggregate_reports([report("2024-03-04", *entries)], ref, team_id="t1")
    assert {a.team_id for a in result.aggregates.values()} == {"t1", "t1a", "t1b"}


def test_multiple_unit_prices_collapse_to_rounded_average():
    ref = make_ref()
    reports = [
        report("2024-03-04", DailyReportEntry(worker_id="w1", man_day=1, unit_price=100000)),
        report("2024-03-05", DailyReportEntry(worker_id="w1", man_day=1, unit_price=100001)),
    ]
    agg = aggregate_reports(reports, ref).aggregates["w1__t1"]
    assert agg.collapsed_unit_price() == 100001


def test_month_bounds():
    assert month_bounds("2024-02") == ("2024-02-01", "2024-02-29")
    assert month_bounds("2023-12") == ("2023-12-01", "2023-12-31")
    with pytest.raises(ValueError):
        month_bounds("2024-13")
    with pytest.raises(ValueError):
        month_bounds("March")


def test_totals_do_not_depend_on_entry_order():
    ref = make_ref()
    reports = [
        report("2024-03-04", DailyReportEntry(worker_id="w1", man_day=1, unit_price=100000)),
        report("2024-03-05", DailyReportEntry(worker_id="w1", man_day=0.5, unit_price=120000)),
        report("2024-03-06", DailyReportEntry(worker_id="w1", man_day=0.3, unit_price=150000)),
    ]
    forward = aggregate_reports(reports, ref).aggregates["w1__t1"]
    backward = aggregate_reports(list(reversed(reports)), ref).aggregates["w1__t1"]
    assert (forward.man_day, forward.gross_amount) == (backward.man_day, backward.gross_amount)
    assert forward.collapsed_unit_price() == backward.collapsed_unit_price()


def test_team_falls_back_to_entry_team_id():
    ref = make_ref(workers=[Worker(id="w1", name="김철수", unit_price=100000, pay_model="monthly")])
    reports = [report("2024-03-04", DailyReportEntry(worker_id="w1", man_day=1, team_id="t1"),
                      team_name="없는 팀")]
    assert set(aggregate_reports(reports, ref).aggregates) == {"w1__t1"}


def test_legacy_pay_type_snapshot_is_used():
    ref = make_ref()
    legacy = DailyReportEntry(**{"worker_id": "w1", "man_day": 1, "payType": "daily"})
    current = DailyReportEntry(worker_id="w1", man_day=2, pay_model="monthly", pay_type="daily")
    result = aggregate_reports([report("2024-03-04", legacy, current)], ref)
    # the legacy entry is a daily-pay entry, the other one keeps its explicit model
    assert float(result.aggregates["w1__t1"].man_day) == 2
    assert aggregate_reports([report("2024-03-04", legacy)], ref, pay_model="daily").aggregates
