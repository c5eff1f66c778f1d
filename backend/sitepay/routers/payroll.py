from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from .. import database
from ..domain.payment import PaymentBatch, PaymentRecord
from ..domain.reference import MONTHLY, PAY_MODELS
from ..export import TRANSFER_HEADERS, payslip_rows, to_csv, transfer_rows
from ..payroll.assembler import apply_display_content, build_monthly_payments
from ..schemas import PayslipRead
from ..store import DocumentStore

router = APIRouter()


def parse_month(month: str | None) -> str:
    if not month:
        raise HTTPException(status_code=400, detail="month is required")
    try:
        return datetime.strptime(month, "%Y-%m").strftime("%Y-%m")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid month format")


def compute_batch(db: Session, month: str | None, team_id: str | None, pay_model: str) -> PaymentBatch:
    year_month = parse_month(month)
    if pay_model not in PAY_MODELS:
        raise HTTPException(status_code=400, detail="Invalid pay model")
    return build_monthly_payments(DocumentStore(db), year_month, team_id=team_id or None, pay_model=pay_model)


def csv_response(content: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        iter([content]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/monthly", response_model=PaymentBatch)
def monthly(
    month: str | None = None,
    team_id: str | None = None,
    pay_model: str = MONTHLY,
    display_content: str | None = None,
    db: Session = Depends(database.get_db),
):
    batch = compute_batch(db, month, team_id, pay_model)
    if display_content:
        apply_display_content(batch.records, display_content)
    return batch


@router.get("/export")
def export(
    month: str | None = None,
    team_id: str | None = None,
    pay_model: str = MONTHLY,
    format: str = "csv",
    db: Session = Depends(database.get_db),
):
    batch = compute_batch(db, month, team_id, pay_model)
    rows = transfer_rows(batch.records)
    if format == "json":
        return rows
    if format != "csv":
        raise HTTPException(status_code=400, detail="Invalid format")
    return csv_response(to_csv(rows, TRANSFER_HEADERS), f"transfer_{batch.month}.csv")


def find_record(batch: PaymentBatch, worker_id: str, team_id: str | None) -> PaymentRecord:
    for record in batch.records:
        if record.worker_id == worker_id and (not team_id or record.team_id == team_id):
            return record
    raise HTTPException(status_code=404, detail="Payment record not found")


@router.get("/payslip")
def payslip(
    worker_id: str,
    month: str | None = None,
    team_id: str | None = None,
    pay_model: str = MONTHLY,
    format: str = "json",
    db: Session = Depends(database.get_db),
):
    batch = compute_batch(db, month, None, pay_model)
    record = find_record(batch, worker_id, team_id)
    rows = payslip_rows(record)
    if format == "csv":
        return csv_response(to_csv(rows), f"payslip_{record.worker_name}_{batch.month}.csv")
    return PayslipRead(record=record, rows=rows)
