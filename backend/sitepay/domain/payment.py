from pydantic import BaseModel, Field
from typing import List


class WorkEntry(BaseModel):
    date: str
    site_name: str
    man_day: float
    unit_price: float
    description: str = ""


class DeductionLine(BaseModel):
    label: str
    amount: float


class DeductionBreakdown(BaseModel):
    standard_lines: List[DeductionLine] = Field(default_factory=list)
    additional_lines: List[DeductionLine] = Field(default_factory=list)
    total_standard: float = 0
    total_additional: float = 0
    total: float = 0
    has_data: bool = False

    @property
    def lines(self) -> List[DeductionLine]:
        return [*self.standard_lines, *self.additional_lines]


class PaymentErrors(BaseModel):
    bank_name: bool = False
    bank_code: bool = False
    account_number: bool = False
    account_holder: bool = False


class PaymentRecord(BaseModel):
    worker_id: str
    worker_name: str
    id_number: str = ""
    company_id: str = ""
    company_name: str = ""
    team_id: str
    team_name: str = ""
    month: str
    total_man_day: float
    unit_price: float
    gross_amount: float
    total_deduction: float
    total_amount: float  # net
    bank_name: str = ""
    bank_code: str = ""
    account_number: str = ""
    account_holder: str = ""
    display_content: str = "월급"
    work_entries: List[WorkEntry] = Field(default_factory=list)
    deduction_breakdown: DeductionBreakdown = Field(default_factory=DeductionBreakdown)
    is_valid: bool = True
    errors: PaymentErrors = Field(default_factory=PaymentErrors)

    @property
    def key(self) -> str:
        return f"{self.worker_id}__{self.team_id}"


class PaymentBatch(BaseModel):
    month: str
    records: List[PaymentRecord] = Field(default_factory=list)
    error_count: int = 0
    # lookup-miss diagnostics for the caller
    warnings: List[str] = Field(default_factory=list)
