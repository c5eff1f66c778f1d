from pydantic import BaseModel
from typing import Optional

# pay models
MONTHLY = "monthly"
DAILY = "daily"
SUPPORT_TEAM = "support-team"
CONTRACT_TEAM = "contract-team"
PAY_MODELS = (MONTHLY, DAILY, SUPPORT_TEAM, CONTRACT_TEAM)

# company types
CONSTRUCTOR = "constructor"
CLIENT = "client"
PARTNER = "partner"
COMPANY_TYPES = (CONSTRUCTOR, CLIENT, PARTNER)


class Worker(BaseModel):
    id: Optional[str] = None
    name: str
    id_number: str = ""
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_holder: Optional[str] = None
    unit_price: float = 0
    pay_model: Optional[str] = None


class Team(BaseModel):
    id: Optional[str] = None
    name: str
    parent_team_id: Optional[str] = None
    parent_team_name: Optional[str] = None
    # cached projection of the owning company, see reconcile.smart_match
    company_id: Optional[str] = None
    company_name: Optional[str] = None
    leader_id: Optional[str] = None
    leader_name: Optional[str] = None


class Company(BaseModel):
    id: Optional[str] = None
    name: str
    type: Optional[str] = None


class Site(BaseModel):
    id: Optional[str] = None
    name: str
    code: str = ""
    address: str = ""
    status: str = "active"
    responsible_team_id: Optional[str] = None
    responsible_team_name: Optional[str] = None
    client_company_id: Optional[str] = None
    client_company_name: Optional[str] = None
    constructor_company_id: Optional[str] = None
    constructor_company_name: Optional[str] = None
    partner_company_id: Optional[str] = None
    partner_company_name: Optional[str] = None


# site role field -> company type it expects
ROLE_FIELDS = {
    "client_company_id": CLIENT,
    "constructor_company_id": CONSTRUCTOR,
    "partner_company_id": PARTNER,
}


def role_mismatches(site: Site, companies: dict[str, Company]) -> list[str]:
    """Return the site role fields holding a company of another type.

    A mismatch is allowed to be saved; callers only flag it.
    """
    mismatched = []
    for field, expected in ROLE_FIELDS.items():
        company_id = getattr(site, field)
        if not company_id:
            continue
        company = companies.get(company_id)
        if company is None or not company.type:
            continue
        if company.type != expected:
            mismatched.append(field)
    return mismatched
