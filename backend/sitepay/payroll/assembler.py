import logging
from typing import Dict, Iterable, List, Optional

from ..config import Config
from ..domain.daily_report import DailyReport
from ..domain.payment import DeductionBreakdown, PaymentBatch, PaymentErrors, PaymentRecord
from ..domain.reference import MONTHLY
from ..store import DAILY_REPORTS, DocumentStore, ReferenceData
from .aggregator import AggregationResult, aggregate_reports, is_sentinel_team, month_bounds
from .bank_codes import BANK_CODES, bank_code_for
from .deductions import AdvanceIndex, build_label_map, load_advances, load_payroll_config, resolve_deductions

logger = logging.getLogger(__name__)


def validate_bank_fields(bank_name: str, bank_code: str, account_number: str, account_holder: str) -> PaymentErrors:
    errors = PaymentErrors()
    if not bank_name:
        errors.bank_name = True
    elif not bank_code and bank_name not in BANK_CODES:
        errors.bank_code = True
    if not account_number:
        errors.account_number = True
    if not account_holder:
        errors.account_holder = True
    return errors


def _has_errors(errors: PaymentErrors) -> bool:
    return any(errors.model_dump().values())


def assemble_records(
    month: str,
    aggregation: AggregationResult,
    ref: ReferenceData,
    advances: AdvanceIndex,
    label_map: Optional[Dict[str, str]] = None,
    display_content: Optional[str] = None,
) -> PaymentBatch:
    """Merge aggregates and deduction breakdowns into payment records.

    Invalid bank details only flag the record; the batch keeps going.
    """
    batch = PaymentBatch(month=month)
    display_content = display_content or Config.DISPLAY_CONTENT

    for agg in aggregation.aggregates.values():
        worker = ref.worker_map.get(agg.worker_id)
        if worker is None:
            continue

        canonical_team_id = (worker.team_id or "").strip() if is_sentinel_team(agg.team_id) else agg.team_id
        breakdown: DeductionBreakdown = resolve_deductions(advances, agg.worker_id, canonical_team_id, label_map)

        gross = float(agg.gross_amount)
        bank_name = worker.bank_name or ""
        bank_code = bank_code_for(bank_name)
        account_number = worker.account_number or ""
        account_holder = worker.account_holder or ""
        errors = validate_bank_fields(bank_name, bank_code, account_number, account_holder)
        is_valid = not _has_errors(errors)
        if not is_valid:
            batch.error_count += 1

        batch.records.append(PaymentRecord(
            worker_id=agg.worker_id,
            worker_name=worker.name,
            id_number=worker.id_number,
            company_id=agg.company_id,
            company_name=agg.company_name,
            team_id=agg.team_id,
            team_name=agg.team_name,
            month=month,
            total_man_day=float(agg.man_day),
            unit_price=agg.collapsed_unit_price(worker.unit_price),
            gross_amount=gross,
            total_deduction=breakdown.total,
            total_amount=gross - breakdown.total,
            bank_name=bank_name,
            bank_code=bank_code,
            account_number=account_number,
            account_holder=account_holder,
            display_content=display_content,
            work_entries=sorted(agg.work_entries, key=lambda e: e.date),
            deduction_breakdown=breakdown,
            is_valid=is_valid,
            errors=errors,
        ))

    for worker_id in sorted(aggregation.unknown_workers):
        batch.warnings.append(f"등록되지 않은 작업자({worker_id})의 공수는 제외되었습니다.")
    return batch


def load_reports(store: DocumentStore, start: str, end: str) -> List[DailyReport]:
    reports = []
    for raw in store.list(DAILY_REPORTS, ranges={"date": (start, end)}):
        try:
            reports.append(DailyReport(**raw))
        except ValueError as e:
            logger.warning("skipping malformed daily report %s: %s", raw.get("id"), e)
    return reports


def build_monthly_payments(
    store: DocumentStore,
    year_month: str,
    team_id: Optional[str] = None,
    pay_model: str = MONTHLY,
    ref: Optional[ReferenceData] = None,
) -> PaymentBatch:
    """Run the monthly pay computation for one month.

    Raises ``ValueError`` for a malformed ``year_month``.
    """
    start, end = month_bounds(year_month)
    ref = ref or ReferenceData.load(store)
    reports = load_reports(store, start, end)
    aggregation = aggregate_reports(reports, ref, pay_model=pay_model, team_id=team_id)
    advances = AdvanceIndex(load_advances(store, year_month))
    label_map = build_label_map(load_payroll_config(store).deduction_items)

    batch = assemble_records(year_month, aggregation, ref, advances, label_map)
    logger.info(
        "payroll %s: %d reports, %d records, %d invalid",
        year_month, len(reports), len(batch.records), batch.error_count,
    )
    return batch


def apply_display_content(records: Iterable[PaymentRecord], value: str, keys: Optional[set] = None) -> None:
    """Set the display label on every record, or only on ``keys``."""
    for record in records:
        if keys is None or record.key in keys:
            record.display_content = value
