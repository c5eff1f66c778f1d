import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import Config
from .domain.daily_report import DailyReport, DailyReportEntry
from .domain.reference import Site, Team
from .resolvers import normalize_name
from .store import DAILY_REPORTS, SITES, TEAMS, DocumentStore, ReferenceData

logger = logging.getLogger(__name__)

# accepted column headers per field
SITE_COLUMNS = {
    "name": ("name", "현장명"),
    "code": ("code", "현장코드"),
    "address": ("address", "주소"),
    "status": ("status", "상태"),
}
REPORT_COLUMNS = {
    "date": ("date", "일자", "날짜"),
    "site": ("site", "site_name", "현장", "현장명"),
    "team": ("team", "team_name", "팀", "팀명"),
    "worker_id": ("worker_id", "작업자ID"),
    "worker": ("worker", "worker_name", "이름", "성명"),
    "man_day": ("man_day", "공수"),
    "unit_price": ("unit_price", "단가"),
    "pay_model": ("pay_model", "급여방식"),
    "work_content": ("work_content", "작업내용"),
}


@dataclass
class ImportResult:
    success: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    def fail(self, row_no: int, reason: str) -> None:
        self.failed += 1
        self.errors.append(f"{row_no}행: {reason}")


def _pick(row: dict, names: Iterable[str]):
    for name in names:
        value = row.get(name)
        if value not in (None, ""):
            return value.strip() if isinstance(value, str) else value
    return None


def _chunks(rows: List, size: int):
    for i in range(0, len(rows), size):
        yield rows[i:i + size]


def _paced(rows: List, chunk_size: Optional[int], delay: Optional[float], sleep: Callable[[float], None]):
    """Yield chunks of ``(row_no, row)``, sleeping between chunks.

    Work done for a chunk, writes included, happens before the next pause.
    """
    size = chunk_size or Config.IMPORT_CHUNK_SIZE
    delay = Config.IMPORT_CHUNK_DELAY if delay is None else delay
    numbered = list(enumerate(rows, start=1))
    for i, chunk in enumerate(_chunks(numbered, size)):
        if i and delay:
            sleep(delay)
        yield chunk


class BulkImporter:
    """Sequential row imports with create-if-missing of sites and teams.

    Nothing guards against two imports creating the same new name at
    once; duplicates are possible in that case.
    """

    def __init__(self, store: DocumentStore, sleep: Callable[[float], None] = time.sleep):
        self.store = store
        self.sleep = sleep
        self.ref = ReferenceData.load(store)

    def _site_by_name(self, name: str) -> Optional[Site]:
        key = normalize_name(name)
        return next((s for s in self.ref.sites if normalize_name(s.name) == key), None)

    def _team_by_name(self, name: str) -> Optional[Team]:
        key = normalize_name(name)
        return next((t for t in self.ref.teams if normalize_name(t.name) == key), None)

    def ensure_site(self, name: str) -> Site:
        site = self._site_by_name(name)
        if site is None:
            site = Site(name=name)
            site.id = self.store.create(SITES, site.model_dump(exclude={"id"}))
            self.ref.sites.append(site)
            self.ref.reindex()
            logger.info("created site %s (%s)", site.id, name)
        return site

    def ensure_team(self, name: str) -> Team:
        team = self._team_by_name(name)
        if team is None:
            team = Team(name=name)
            team.id = self.store.create(TEAMS, team.model_dump(exclude={"id"}))
            self.ref.teams.append(team)
            self.ref.reindex()
            logger.info("created team %s (%s)", team.id, name)
        return team

    def _import_site_row(self, row_no: int, row: dict, result: ImportResult) -> None:
        name = _pick(row, SITE_COLUMNS["name"])
        if not name:
            result.fail(row_no, "현장명이 없습니다.")
            return
        if self._site_by_name(str(name)):
            result.fail(row_no, f"이미 등록된 현장입니다: {name}")
            return
        try:
            site = Site(
                name=str(name),
                code=str(_pick(row, SITE_COLUMNS["code"]) or ""),
                address=str(_pick(row, SITE_COLUMNS["address"]) or ""),
                status=str(_pick(row, SITE_COLUMNS["status"]) or "active"),
            )
            site.id = self.store.create(SITES, site.model_dump(exclude={"id"}))
        except (ValueError, SQLAlchemyError) as e:
            self.store.db.rollback()
            logger.exception("site row %d failed", row_no)
            result.fail(row_no, str(e))
            return
        self.ref.sites.append(site)
        self.ref.reindex()
        result.success += 1

    def import_sites(self, rows: List[dict], chunk_size: int = None, delay: float = None) -> ImportResult:
        result = ImportResult()
        for chunk in _paced(rows, chunk_size, delay, self.sleep):
            for row_no, row in chunk:
                self._import_site_row(row_no, row, result)
        logger.info("site import: %d ok, %d failed", result.success, result.failed)
        return result

    def _worker_for(self, row: dict):
        worker_id = _pick(row, REPORT_COLUMNS["worker_id"])
        if worker_id:
            return self.ref.worker_map.get(str(worker_id))
        name = _pick(row, REPORT_COLUMNS["worker"])
        if not name:
            return None
        key = normalize_name(str(name))
        return next((w for w in self.ref.workers if normalize_name(w.name) == key), None)

    def _parse_report_row(self, row: dict):
        date = _pick(row, REPORT_COLUMNS["date"])
        site_name = _pick(row, REPORT_COLUMNS["site"])
        if not date or not site_name:
            raise ValueError("일자와 현장명은 필수입니다.")
        worker = self._worker_for(row)
        if worker is None:
            raise ValueError("작업자를 찾을 수 없습니다.")
        man_day = float(_pick(row, REPORT_COLUMNS["man_day"]) or 0)
        raw_price = _pick(row, REPORT_COLUMNS["unit_price"])
        entry = DailyReportEntry(
            worker_id=worker.id,
            name=worker.name,
            man_day=man_day,
            unit_price=float(raw_price) if raw_price is not None else worker.unit_price,
            pay_model=_pick(row, REPORT_COLUMNS["pay_model"]) or worker.pay_model,
            work_content=_pick(row, REPORT_COLUMNS["work_content"]),
        )
        team_name = _pick(row, REPORT_COLUMNS["team"]) or worker.team_name
        return str(date)[:10], str(site_name), team_name, entry

    def _write_reports(
        self,
        groups: Dict[tuple, DailyReport],
        pending: Dict[tuple, List[int]],
        result: ImportResult,
    ) -> None:
        """Persist the reports that gained entries in the current chunk.

        A failed write turns that chunk's rows for the report into failures;
        their entries are dropped so a later chunk does not resend them.
        """
        for key, row_nos in pending.items():
            report = groups[key]
            try:
                if report.id is None:
                    report.id = self.store.create(DAILY_REPORTS, report.model_dump(exclude={"id"}))
                else:
                    self.store.update(DAILY_REPORTS, report.id,
                                      {"workers": [w.model_dump() for w in report.workers]})
            except SQLAlchemyError as e:
                self.store.db.rollback()
                logger.exception("daily report %s/%s write failed", key[0], key[1])
                del report.workers[len(report.workers) - len(row_nos):]
                result.success -= len(row_nos)
                for row_no in row_nos:
                    result.fail(row_no, f"일보 저장에 실패했습니다: {e}")
        pending.clear()

    def import_daily_reports(self, rows: List[dict], chunk_size: int = None, delay: float = None) -> ImportResult:
        """Group rows by (date, site, team) into reports, writing after each chunk."""
        result = ImportResult()
        groups: Dict[tuple, DailyReport] = {}
        pending: Dict[tuple, List[int]] = {}
        for chunk in _paced(rows, chunk_size, delay, self.sleep):
            for row_no, row in chunk:
                try:
                    date, site_name, team_name, entry = self._parse_report_row(row)
                    site = self.ensure_site(site_name)
                    team = self.ensure_team(team_name) if team_name else None
                except (ValueError, SQLAlchemyError) as e:
                    self.store.db.rollback()
                    logger.debug("report row %d rejected: %s", row_no, e)
                    result.fail(row_no, str(e))
                    continue
                key = (date, site.id, team.id if team else None)
                report = groups.get(key)
                if report is None:
                    report = groups[key] = DailyReport(
                        date=date,
                        site_id=site.id,
                        site_name=site.name,
                        team_id=team.id if team else None,
                        team_name=team.name if team else None,
                    )
                report.workers.append(entry)
                pending.setdefault(key, []).append(row_no)
                result.success += 1
            self._write_reports(groups, pending, result)

        written = sum(1 for report in groups.values() if report.id)
        logger.info("daily report import: %d rows ok, %d failed, %d reports",
                    result.success, result.failed, written)
        return result
