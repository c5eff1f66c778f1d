from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import database
from ..domain.reference import role_mismatches
from ..reconcile.smart_match import SmartMatcher
from ..schemas import ReconciliationRead, ResponsibleTeamChange, RoleCheck
from ..store import DocumentStore, ReferenceData

router = APIRouter()


@router.post("/{site_id}/responsible-team", response_model=ReconciliationRead)
def change_responsible_team(
    site_id: str,
    payload: ResponsibleTeamChange,
    db: Session = Depends(database.get_db),
):
    store = DocumentStore(db)
    ref = ReferenceData.load(store)
    site = ref.site_map.get(site_id)
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")
    result = SmartMatcher(store, ref).change_responsible_team(site, payload.team_id)
    return ReconciliationRead(**vars(result))


@router.get("/{site_id}/role-check", response_model=RoleCheck)
def role_check(site_id: str, db: Session = Depends(database.get_db)):
    ref = ReferenceData.load(DocumentStore(db))
    site = ref.site_map.get(site_id)
    if site is None:
        raise HTTPException(status_code=404, detail="Site not found")
    return RoleCheck(site_id=site_id, mismatched_fields=role_mismatches(site, ref.company_map))
