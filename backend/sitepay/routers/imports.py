from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import database
from ..importer import BulkImporter
from ..schemas import ImportRows, ImportSummary
from ..store import DocumentStore

router = APIRouter()


@router.post("/sites", response_model=ImportSummary)
def import_sites(payload: ImportRows, db: Session = Depends(database.get_db)):
    result = BulkImporter(DocumentStore(db)).import_sites(payload.rows, payload.chunk_size, payload.delay)
    return ImportSummary(success=result.success, failed=result.failed, errors=result.errors)


@router.post("/daily-reports", response_model=ImportSummary)
def import_daily_reports(payload: ImportRows, db: Session = Depends(database.get_db)):
    result = BulkImporter(DocumentStore(db)).import_daily_reports(payload.rows, payload.chunk_size, payload.delay)
    return ImportSummary(success=result.success, failed=result.failed, errors=result.errors)
