import math
from pydantic import BaseModel, Field, field_validator
from typing import Dict, Optional

# (field, fixed label) in display order
STANDARD_DEDUCTION_FIELDS = [
    ("prev_month_carryover", "전월 이월"),
    ("accommodation", "숙소비"),
    ("private_room", "개인방"),
    ("gloves", "장갑"),
    ("deposit", "보증금"),
    ("fines", "과태료"),
    ("electricity", "전기료"),
    ("gas", "도시가스"),
    ("internet", "인터넷"),
    ("water", "수도세"),
]


def to_number(value) -> float:
    """Finite numbers pass through, anything else counts as zero."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)) and math.isfinite(value):
        return value
    return 0


def to_amount(value) -> float:
    """Like ``to_number``, but numeric strings from forms and sheets are parsed."""
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    return to_number(value)


class AdvancePayment(BaseModel):
    id: Optional[str] = None
    worker_id: str
    worker_name: str = ""
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    year_month: str  # YYYY-MM

    prev_month_carryover: float = 0
    accommodation: float = 0
    private_room: float = 0
    gloves: float = 0
    deposit: float = 0
    fines: float = 0
    electricity: float = 0
    gas: float = 0
    internet: float = 0
    water: float = 0

    # custom deduction items, label key -> amount
    items: Dict[str, float] = Field(default_factory=dict)

    total_deduction: float = 0

    @field_validator(*(field for field, _ in STANDARD_DEDUCTION_FIELDS), "total_deduction", mode="before")
    @classmethod
    def _zero_bad_amounts(cls, value):
        # one bad cell must not drop the whole record
        return to_amount(value)

    @field_validator("items", mode="before")
    @classmethod
    def _normalize_items(cls, value):
        if not isinstance(value, dict):
            return {}
        return {
            str(key): to_amount(amount)
            for key, amount in value.items()
            if isinstance(key, str) and key.strip()
        }

    def compute_total(self) -> float:
        standard = sum(to_number(getattr(self, field)) for field, _ in STANDARD_DEDUCTION_FIELDS)
        return standard + sum(to_number(v) for v in self.items.values())

    @property
    def document_id(self) -> str:
        return f"{self.team_id or ''}_{self.worker_id}_{self.year_month}"
