import logging
from calendar import monthrange
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, List, Optional, Set

from ..domain.daily_report import DailyReport, DailyReportEntry
from ..domain.payment import WorkEntry
from ..domain.reference import MONTHLY, Worker
from ..resolvers import Resolver, normalize_name, resolve_first
from ..store import ReferenceData

logger = logging.getLogger(__name__)

NO_TEAM = "no-team"
UNRESOLVED_PREFIX = "unresolved:"


def _decimal(v) -> Decimal:
    try:
        return Decimal(str(v))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0")


def month_bounds(year_month: str) -> tuple[str, str]:
    """``"2024-03"`` -> ``("2024-03-01", "2024-03-31")``."""
    year, month = (int(p) for p in year_month.split("-"))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {year_month}")
    last = monthrange(year, month)[1]
    return f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last:02d}"


def is_sentinel_team(team_key: str) -> bool:
    return not team_key or team_key == NO_TEAM or team_key.startswith(UNRESOLVED_PREFIX)


@dataclass
class TeamContext:
    worker: Worker
    report: DailyReport
    entry: DailyReportEntry
    report_team_id: str
    report_team_name: str
    ref: ReferenceData


class WorkerTeamId(Resolver[str]):
    name = "worker"

    def resolve(self, ctx: TeamContext):
        return (ctx.worker.team_id or "").strip() or None


class ReportTeamId(Resolver[str]):
    name = "report"

    def resolve(self, ctx: TeamContext):
        return ctx.report_team_id or None


class ReportTeamName(Resolver[str]):
    name = "report-name"

    def resolve(self, ctx: TeamContext):
        return team_id_by_name(ctx.ref, ctx.report_team_name)


class EntryTeamId(Resolver[str]):
    name = "entry"

    def resolve(self, ctx: TeamContext):
        return (ctx.entry.team_id or "").strip() or None


TEAM_RESOLVERS: List[Resolver[str]] = [WorkerTeamId(), ReportTeamId(), ReportTeamName(), EntryTeamId()]


def team_id_by_name(ref: ReferenceData, name: Optional[str]) -> Optional[str]:
    normalized = normalize_name(name)
    if not normalized:
        return None
    for team in ref.teams:
        if team.id and normalize_name(team.name) == normalized:
            return team.id
    return None


def allowed_team_ids(ref: ReferenceData, team_id: str) -> Set[str]:
    """The team itself plus its sub-teams, matched by parent id or parent name."""
    selected = ref.team_map.get(team_id)
    selected_name = normalize_name(selected.name if selected else "")
    ids = {team_id}
    for team in ref.teams:
        if not team.id:
            continue
        if team.parent_team_id == team_id:
            ids.add(team.id)
            continue
        if selected_name and normalize_name(team.parent_team_name) == selected_name:
            ids.add(team.id)
    return ids


@dataclass
class WorkerAggregate:
    worker_id: str
    team_id: str
    team_name: str
    company_id: str
    company_name: str
    man_day: Decimal = Decimal("0")
    gross_amount: Decimal = Decimal("0")
    unit_prices: List[Decimal] = field(default_factory=list)
    work_entries: List[WorkEntry] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.worker_id}__{self.team_id}"

    def collapsed_unit_price(self, fallback: float = 0) -> float:
        if len(self.unit_prices) == 1:
            return float(self.unit_prices[0])
        if self.man_day > 0:
            return float((self.gross_amount / self.man_day).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        return fallback or 0


@dataclass
class AggregationResult:
    aggregates: Dict[str, WorkerAggregate] = field(default_factory=dict)
    unknown_workers: Set[str] = field(default_factory=set)


def aggregate_reports(
    reports: List[DailyReport],
    ref: ReferenceData,
    pay_model: str = MONTHLY,
    team_id: Optional[str] = None,
) -> AggregationResult:
    """Fold daily report entries into per-(worker, team) totals."""
    result = AggregationResult()
    allowed = allowed_team_ids(ref, team_id) if team_id else None

    for report in reports:
        site = ref.site_map.get(report.site_id or "")
        report_team_id = (report.team_id or "").strip() or team_id_by_name(ref, report.team_name) or ""
        report_team = ref.team_map.get(report_team_id)
        report_team_name = report.team_name or (report_team.name if report_team else "")

        for entry in report.workers:
            worker = ref.worker_map.get(entry.worker_id)
            if worker is None:
                result.unknown_workers.add(entry.worker_id)
                logger.debug("report %s: unknown worker %s", report.id, entry.worker_id)
                continue

            entry_model = (entry.pay_model or "").strip() or (entry.pay_type or "").strip() or worker.pay_model
            if entry_model != pay_model:
                continue

            if allowed is not None and (worker.team_id or "").strip() not in allowed:
                continue

            ctx = TeamContext(worker, report, entry, report_team_id, report_team_name, ref)
            resolved = resolve_first(TEAM_RESOLVERS, ctx)
            resolved_team = ref.team_map.get(resolved.value or "")
            team_name = (
                (worker.team_name or "").strip()
                or report_team_name
                or (resolved_team.name if resolved_team else "")
            )
            if resolved.found:
                team_key = resolved.value
            elif normalize_name(team_name):
                team_key = UNRESOLVED_PREFIX + normalize_name(team_name)
            else:
                team_key = NO_TEAM

            key = f"{entry.worker_id}__{team_key}"
            agg = result.aggregates.get(key)
            if agg is None:
                agg = result.aggregates[key] = WorkerAggregate(
                    worker_id=entry.worker_id,
                    team_id=team_key,
                    team_name=team_name,
                    company_id=(
                        worker.company_id
                        or (resolved_team.company_id if resolved_team else None)
                        or report.company_id
                        or (site.constructor_company_id if site else None)
                        or ""
                    ),
                    company_name=(
                        worker.company_name
                        or (resolved_team.company_name if resolved_team else None)
                        or report.company_name
                        or ""
                    ),
                )

            unit_price = entry.unit_price if entry.unit_price is not None else (worker.unit_price or 0)
            man_day = _decimal(entry.man_day)
            price = _decimal(unit_price)
            agg.man_day += man_day
            agg.gross_amount += man_day * price
            if price not in agg.unit_prices:
                agg.unit_prices.append(price)
            agg.work_entries.append(WorkEntry(
                date=report.date,
                site_name=report.site_name or (site.name if site else "") or "-",
                man_day=entry.man_day,
                unit_price=unit_price,
                description=entry.work_content or report.work_content or "",
            ))

    return result
