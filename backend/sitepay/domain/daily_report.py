from pydantic import AliasChoices, BaseModel, Field
from typing import List, Optional


class DailyReportEntry(BaseModel):
    worker_id: str
    name: str = ""
    man_day: float = Field(default=0, ge=0)
    # snapshots taken when the report was written
    unit_price: Optional[float] = None
    pay_model: Optional[str] = None
    # legacy pay model snapshot, read when pay_model is empty
    pay_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("pay_type", "payType"))
    team_id: Optional[str] = None
    work_content: Optional[str] = None


class DailyReport(BaseModel):
    id: Optional[str] = None
    date: str  # YYYY-MM-DD
    site_id: Optional[str] = None
    site_name: Optional[str] = None
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    work_content: Optional[str] = None
    workers: List[DailyReportEntry] = Field(default_factory=list)
