import logging
from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import database
from ..domain.advance import AdvancePayment
from ..domain.daily_report import DailyReport
from ..domain.reference import Company, Site, Team, Worker
from ..schemas import EntryUpdate
from ..store import (
    ADVANCE_PAYMENTS, COMPANIES, DAILY_REPORTS, SITES, TEAMS, WORKERS,
    DocumentNotFound, DocumentStore,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# url segment -> (collection, model)
COLLECTIONS = {
    "workers": (WORKERS, Worker),
    "teams": (TEAMS, Team),
    "companies": (COMPANIES, Company),
    "sites": (SITES, Site),
    "daily-reports": (DAILY_REPORTS, DailyReport),
}


def resolve_collection(name: str):
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown collection: {name}")


def validated(model, data: dict):
    try:
        return model(**data)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


# advance payments are declared first so the generic routes don't shadow them

@router.put("/advance-payments", response_model=AdvancePayment)
def save_advance_payment(payload: AdvancePayment, db: Session = Depends(database.get_db)):
    """Upsert under ``{team_id}_{worker_id}_{year_month}`` with a recomputed total."""
    record = payload.model_copy(update={"total_deduction": payload.compute_total()})
    record.id = record.document_id
    DocumentStore(db).set(ADVANCE_PAYMENTS, record.id, record.model_dump(exclude={"id"}), merge=False)
    return record


@router.get("/advance-payments", response_model=list[AdvancePayment])
def list_advance_payments(year_month: str | None = None, db: Session = Depends(database.get_db)):
    filters = {"year_month": year_month} if year_month else None
    return DocumentStore(db).list(ADVANCE_PAYMENTS, filters=filters)


@router.patch("/daily-reports/{report_id}/workers/{worker_id}", response_model=DailyReport)
def update_report_entry(
    report_id: str,
    worker_id: str,
    payload: EntryUpdate,
    db: Session = Depends(database.get_db),
):
    store = DocumentStore(db)
    raw = store.get(DAILY_REPORTS, report_id)
    if raw is None:
        raise HTTPException(status_code=404, detail="Daily report not found")
    report = validated(DailyReport, raw)
    changes = payload.model_dump(exclude_none=True)
    for i, entry in enumerate(report.workers):
        if entry.worker_id == worker_id:
            report.workers[i] = validated(type(entry), {**entry.model_dump(), **changes})
            break
    else:
        raise HTTPException(status_code=404, detail="Worker not in report")
    store.update(DAILY_REPORTS, report_id, {"workers": [w.model_dump() for w in report.workers]})
    return report


@router.get("/{collection}")
def list_documents(collection: str, db: Session = Depends(database.get_db)):
    name, _ = resolve_collection(collection)
    return DocumentStore(db).list(name)


@router.post("/{collection}")
def create_document(collection: str, payload: dict = Body(...), db: Session = Depends(database.get_db)):
    name, model = resolve_collection(collection)
    item = validated(model, payload)
    try:
        item.id = DocumentStore(db).create(name, item.model_dump(exclude={"id"}), doc_id=payload.get("id"))
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=f"Document already exists: {payload.get('id')}")
    logger.info("created %s/%s", name, item.id)
    return item


@router.get("/{collection}/{doc_id}")
def get_document(collection: str, doc_id: str, db: Session = Depends(database.get_db)):
    name, _ = resolve_collection(collection)
    doc = DocumentStore(db).get(name, doc_id)
    if doc is None:
        raise HTTPException(status_code=404, detail="Document not found")
    return doc


@router.patch("/{collection}/{doc_id}")
def update_document(
    collection: str,
    doc_id: str,
    payload: dict = Body(...),
    db: Session = Depends(database.get_db),
):
    name, model = resolve_collection(collection)
    store = DocumentStore(db)
    current = store.get(name, doc_id)
    if current is None:
        raise HTTPException(status_code=404, detail="Document not found")
    item = validated(model, {**current, **payload, "id": doc_id})
    try:
        return store.update(name, doc_id, item.model_dump(exclude={"id"}))
    except DocumentNotFound:
        raise HTTPException(status_code=404, detail="Document not found")
