from pydantic import BaseModel
from typing import Literal, Optional

from .domain.payment import PaymentRecord
from .domain.reference import Company, Site, Team


class ResponsibleTeamChange(BaseModel):
    team_id: Optional[str] = None


class ReconciliationRead(BaseModel):
    site: Site
    team: Optional[Team] = None
    company: Optional[Company] = None
    matched_by: Optional[str] = None
    drift: bool = False
    repaired: bool = False
    saved: bool = True
    message: str = ""


class RoleCheck(BaseModel):
    site_id: str
    mismatched_fields: list[str] = []


class EntryUpdate(BaseModel):
    man_day: float | None = None
    unit_price: float | None = None
    work_content: str | None = None


class ImportRows(BaseModel):
    rows: list[dict]
    chunk_size: int | None = None
    delay: float | None = None


class ImportSummary(BaseModel):
    success: int
    failed: int
    errors: list[str] = []


class ComponentUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    category: Literal['WIDGET', 'FEATURE', 'PAGE_SECTION'] | None = None
    is_enabled: bool | None = None
    allowed_roles: list[str] | None = None


class PayslipRead(BaseModel):
    record: PaymentRecord
    rows: list[list]
