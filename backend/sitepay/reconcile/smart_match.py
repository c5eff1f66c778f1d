"""Team -> company reconciliation ("smart match").

Runs when a site's responsible team changes. The team's ``company_id`` is a
cached projection of the owning company; when it is missing or stale the
company is found by name and the team record is repaired.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..domain.reference import PARTNER, Company, Site, Team
from ..resolvers import Resolution, Resolver, normalize_value, resolve_first
from ..store import SITES, TEAMS, DocumentStore, ReferenceData

logger = logging.getLogger(__name__)

ID_MATCH = "id"
EXACT_NAME = "exact-name"
NORMALIZED_NAME = "normalized-name"
SUBSTRING = "substring"

# substring matching on shorter names gives false positives
MIN_SUBSTRING_LENGTH = 3


@dataclass
class MatchContext:
    team: Team
    companies: List[Company]


class CompanyById(Resolver[Company]):
    name = ID_MATCH

    def resolve(self, ctx: MatchContext):
        company_id = (ctx.team.company_id or "").strip()
        if not company_id:
            return None
        return next((c for c in ctx.companies if c.id == company_id), None)


class CompanyByExactName(Resolver[Company]):
    name = EXACT_NAME

    def resolve(self, ctx: MatchContext):
        name = ctx.team.company_name
        if not name:
            return None
        return next((c for c in ctx.companies if c.name == name), None)


class CompanyByNormalizedName(Resolver[Company]):
    name = NORMALIZED_NAME

    def resolve(self, ctx: MatchContext):
        target = normalize_value(ctx.team.company_name)
        if not target:
            return None
        return next((c for c in ctx.companies if normalize_value(c.name) == target), None)


class CompanyBySubstring(Resolver[Company]):
    name = SUBSTRING

    def resolve(self, ctx: MatchContext):
        target = normalize_value(ctx.team.company_name)
        if len(target) < MIN_SUBSTRING_LENGTH:
            return None
        for company in ctx.companies:
            candidate = normalize_value(company.name)
            if candidate and (target in candidate or candidate in target):
                return company
        return None


NAME_RESOLVERS: List[Resolver[Company]] = [CompanyByExactName(), CompanyByNormalizedName(), CompanyBySubstring()]


@dataclass
class ReconciliationResult:
    site: Site
    team: Optional[Team]
    company: Optional[Company] = None
    matched_by: Optional[str] = None
    drift: bool = False
    repaired: bool = False
    saved: bool = True
    message: str = ""


def resolve_company(team: Team, companies: List[Company]) -> tuple[Resolution[Company], bool]:
    """Return the company resolution and whether the id match drifted.

    Drift means the id resolves but the company's name no longer matches
    the team's ``company_name`` snapshot.
    """
    ctx = MatchContext(team=team, companies=companies)
    by_id = CompanyById().resolve(ctx)
    drift = bool(
        by_id is not None
        and normalize_value(team.company_name)
        and normalize_value(by_id.name) != normalize_value(team.company_name)
    )
    if by_id is not None and not drift:
        return Resolution(value=by_id, strategy=ID_MATCH), False

    by_name = resolve_first(NAME_RESOLVERS, ctx)
    if by_name.found:
        return by_name, drift
    if by_id is not None:
        # drifted but nothing better by name: keep the id match
        return Resolution(value=by_id, strategy=ID_MATCH), drift
    return by_name, drift


def apply_company_roles(site: Site, company: Optional[Company]) -> Site:
    """A site holds one role company at a time, chosen by company type."""
    cleared = dict(
        client_company_id=None, client_company_name=None,
        constructor_company_id=None, constructor_company_name=None,
        partner_company_id=None, partner_company_name=None,
    )
    if company is None:
        return site.model_copy(update=cleared)
    if company.type == PARTNER:
        cleared.update(partner_company_id=company.id, partner_company_name=company.name)
    else:
        cleared.update(constructor_company_id=company.id, constructor_company_name=company.name)
    return site.model_copy(update=cleared)


class SmartMatcher:
    def __init__(self, store: DocumentStore, ref: ReferenceData):
        self.store = store
        self.ref = ref

    def _fresh_team(self, team_id: str) -> Optional[Team]:
        cached = self.ref.team_map.get(team_id)
        try:
            raw = self.store.get(TEAMS, team_id)
        except SQLAlchemyError:
            self.store.db.rollback()
            logger.exception("fresh fetch of team %s failed, using cached copy", team_id)
            return cached
        if raw is None:
            logger.warning("team %s not found in store, using cached copy", team_id)
            return cached
        try:
            return Team(**raw)
        except ValueError:
            logger.exception("team %s is malformed, using cached copy", team_id)
            return cached

    def _heal_team(self, team: Team, company: Company) -> bool:
        try:
            self.store.update(TEAMS, team.id, {"company_id": company.id, "company_name": company.name})
        except (SQLAlchemyError, KeyError):
            self.store.db.rollback()
            logger.exception("auto-repair of team %s -> company %s failed", team.id, company.id)
            return False
        self.ref.replace_team(team.model_copy(update={"company_id": company.id, "company_name": company.name}))
        logger.info("team %s relinked to company %s (%s)", team.id, company.id, company.name)
        return True

    def change_responsible_team(self, site: Site, team_id: Optional[str]) -> ReconciliationResult:
        if not team_id:
            updated = apply_company_roles(
                site.model_copy(update={"responsible_team_id": None, "responsible_team_name": None}), None)
            result = ReconciliationResult(site=updated, team=None, message="담당 팀이 해제되었습니다.")
            return self._save_site(result)

        team = self._fresh_team(team_id)
        if team is None:
            return ReconciliationResult(
                site=site, team=None, saved=False,
                message=f"팀({team_id})을 찾을 수 없어 현장을 변경하지 않았습니다.",
            )

        site = site.model_copy(update={"responsible_team_id": team.id, "responsible_team_name": team.name})
        resolution, drift = resolve_company(team, self.ref.companies)
        company = resolution.value
        result = ReconciliationResult(
            site=apply_company_roles(site, company),
            team=team,
            company=company,
            matched_by=resolution.strategy,
            drift=drift,
        )

        if company is None:
            if not (team.company_name or "").strip():
                result.message = f"'{team.name}' 팀에 등록된 회사명이 없어 현장의 회사 정보를 비웠습니다."
            else:
                result.message = (
                    f"'{team.name}' 팀의 회사명 '{team.company_name}'을(를) 회사 목록에서 찾을 수 없어 "
                    "현장의 회사 정보를 비웠습니다."
                )
            logger.warning("no company for team %s (company_name=%r)", team.id, team.company_name)
            return self._save_site(result)

        needs_repair = resolution.strategy != ID_MATCH and (
            company.id != team.company_id or company.name != team.company_name)
        if needs_repair:
            result.repaired = self._heal_team(team, company)

        role = "협력사" if company.type == PARTNER else "시공사"
        message = f"{role} '{company.name}'(으)로 연결되었습니다."
        if result.repaired:
            message += " 팀의 회사 정보를 자동 복구했습니다."
        elif needs_repair:
            message += " 팀의 회사 정보 자동 복구에 실패했습니다."
        result.message = message
        return self._save_site(result)

    def _save_site(self, result: ReconciliationResult) -> ReconciliationResult:
        site = result.site
        try:
            self.store.update(SITES, site.id, site.model_dump(exclude={"id"}))
        except (SQLAlchemyError, KeyError):
            self.store.db.rollback()
            logger.exception("site %s update failed", site.id)
            result.saved = False
            result.message += " 현장 저장에 실패했습니다."
        # in-memory state stays updated either way
        self.ref.replace_site(site)
        return result
