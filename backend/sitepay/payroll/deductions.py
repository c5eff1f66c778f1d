import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel

from ..domain.advance import STANDARD_DEDUCTION_FIELDS, AdvancePayment, to_number
from ..domain.payment import DeductionBreakdown, DeductionLine
from ..store import ADVANCE_PAYMENTS, SETTINGS, DocumentStore

logger = logging.getLogger(__name__)

NO_TEAM_GROUP = "__no_team__"
PAYROLL_CONFIG_ID = "payroll_config_v1"


class PayrollDeductionItem(BaseModel):
    id: str
    label: str
    order: int = 0
    is_active: bool = True


class PayrollConfig(BaseModel):
    deduction_items: List[PayrollDeductionItem]


DEFAULT_CONFIG = PayrollConfig(deduction_items=[
    PayrollDeductionItem(id="prev_month_carryover", label="전월이월", order=1),
    PayrollDeductionItem(id="accommodation", label="숙소비", order=2),
    PayrollDeductionItem(id="private_room", label="개인방", order=3),
    PayrollDeductionItem(id="gloves", label="장갑", order=4),
    PayrollDeductionItem(id="deposit", label="보증금", order=5),
    PayrollDeductionItem(id="fines", label="과태료", order=6),
    PayrollDeductionItem(id="electricity", label="전기료", order=7),
    PayrollDeductionItem(id="gas", label="도시가스", order=8),
    PayrollDeductionItem(id="internet", label="인터넷", order=9),
    PayrollDeductionItem(id="water", label="수도세", order=10),
])


def sanitize_config(raw) -> PayrollConfig:
    if not isinstance(raw, dict) or not isinstance(raw.get("deduction_items"), list):
        return DEFAULT_CONFIG
    items = []
    for it in raw["deduction_items"]:
        if not isinstance(it, dict):
            continue
        item_id = str(it.get("id") or "").strip()
        label = str(it.get("label") or "").strip()
        if not item_id or not label:
            continue
        order = it.get("order")
        items.append(PayrollDeductionItem(
            id=item_id,
            label=label,
            order=int(order) if isinstance(order, (int, float)) and not isinstance(order, bool) else 0,
            is_active=it.get("is_active") if isinstance(it.get("is_active"), bool) else True,
        ))
    return PayrollConfig(deduction_items=items)


def load_payroll_config(store: DocumentStore) -> PayrollConfig:
    return sanitize_config(store.get(SETTINGS, PAYROLL_CONFIG_ID))


def save_payroll_config(store: DocumentStore, config: PayrollConfig) -> PayrollConfig:
    store.set(SETTINGS, PAYROLL_CONFIG_ID, config.model_dump(), merge=False)
    return config


def build_label_map(items: Optional[Iterable[PayrollDeductionItem]] = None) -> Dict[str, str]:
    labels = {key: label for key, label in STANDARD_DEDUCTION_FIELDS}
    for item in items or []:
        safe_id = item.id.strip()
        if not safe_id:
            continue
        labels[safe_id] = item.label.strip() or safe_id
    return labels


def deduplicate_records(records: List[AdvancePayment]) -> List[AdvancePayment]:
    """Keep one record per team, the one with the larger total deduction.

    Duplicate advance documents for the same worker/team/month come from
    the write path; ties go to the later record.
    """
    by_team: Dict[str, AdvancePayment] = {}
    for record in records:
        team_key = (record.team_id or "").strip() or NO_TEAM_GROUP
        prev = by_team.get(team_key)
        if prev is None or to_number(record.total_deduction) >= to_number(prev.total_deduction):
            by_team[team_key] = record
    return list(by_team.values())


def build_breakdown(
    records: List[AdvancePayment],
    label_map: Optional[Dict[str, str]] = None,
) -> DeductionBreakdown:
    if not records:
        return DeductionBreakdown()

    label_map = label_map or {}
    deduped = deduplicate_records(records)

    standard_lines = []
    for key, label in STANDARD_DEDUCTION_FIELDS:
        total = sum((Decimal(str(to_number(getattr(r, key)))) for r in deduped), Decimal("0"))
        if total > 0:
            standard_lines.append(DeductionLine(label=label, amount=float(total)))

    additional: Dict[str, Decimal] = {}
    for record in deduped:
        for item_label, raw in record.items.items():
            amount = to_number(raw)
            if amount <= 0:
                continue
            additional[item_label] = additional.get(item_label, Decimal("0")) + Decimal(str(amount))

    additional_lines = sorted(
        (DeductionLine(label=label_map.get(key, key), amount=float(total)) for key, total in additional.items()),
        key=lambda line: line.amount,
        reverse=True,
    )

    total_standard = sum(line.amount for line in standard_lines)
    total_additional = sum(line.amount for line in additional_lines)
    total = total_standard + total_additional
    return DeductionBreakdown(
        standard_lines=standard_lines,
        additional_lines=additional_lines,
        total_standard=total_standard,
        total_additional=total_additional,
        total=total,
        has_data=total > 0,
    )


class AdvanceIndex:
    """Advance records of one month, indexed for the two-step lookup."""

    def __init__(self, records: Iterable[AdvancePayment]):
        self.by_worker_team: Dict[str, List[AdvancePayment]] = {}
        self.by_worker: Dict[str, List[AdvancePayment]] = {}
        for record in records:
            worker_id = (record.worker_id or "").strip()
            if not worker_id:
                continue
            team_id = (record.team_id or "").strip()
            if team_id:
                self.by_worker_team.setdefault(f"{worker_id}__{team_id}", []).append(record)
            self.by_worker.setdefault(worker_id, []).append(record)

    def lookup(self, worker_id: str, team_id: Optional[str]) -> List[AdvancePayment]:
        if team_id:
            primary = self.by_worker_team.get(f"{worker_id}__{team_id}", [])
            if primary:
                return primary
        return self.by_worker.get(worker_id, [])


def resolve_deductions(
    index: AdvanceIndex,
    worker_id: str,
    team_id: Optional[str],
    label_map: Optional[Dict[str, str]] = None,
) -> DeductionBreakdown:
    records = index.lookup(worker_id, team_id)
    if not records:
        logger.debug("no advance records for worker %s team %s", worker_id, team_id)
    return build_breakdown(records, label_map)


def load_advances(store: DocumentStore, year_month: str) -> List[AdvancePayment]:
    records = []
    for raw in store.list(ADVANCE_PAYMENTS, filters={"year_month": year_month}):
        try:
            records.append(AdvancePayment(**raw))
        except ValueError as e:
            logger.warning("skipping malformed advance payment %s: %s", raw.get("id"), e)
    return records
