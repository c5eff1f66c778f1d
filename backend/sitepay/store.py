import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy.orm import Session

from . import models
from .domain.reference import Company, Site, Team, Worker

logger = logging.getLogger(__name__)

WORKERS = "workers"
TEAMS = "teams"
COMPANIES = "companies"
SITES = "sites"
DAILY_REPORTS = "daily_reports"
ADVANCE_PAYMENTS = "advance_payments"
SETTINGS = "settings"
SYSTEM_COMPONENTS = "system_components"


class DocumentNotFound(KeyError):
    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"{collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


def _to_dict(doc: models.Document) -> dict:
    data = dict(doc.data or {})
    data["id"] = doc.id
    return data


class DocumentStore:
    """Collections of JSON documents on top of a SQLAlchemy session.

    Only equality and inclusive range filters on top-level fields are
    supported; values are compared as strings.
    """

    def __init__(self, db: Session):
        self.db = db

    def _query(self, collection: str):
        return self.db.query(models.Document).filter(models.Document.collection == collection)

    def list(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        ranges: dict[str, tuple[str | None, str | None]] | None = None,
    ) -> list[dict]:
        query = self._query(collection)
        for name, value in (filters or {}).items():
            query = query.filter(models.Document.data[name].as_string() == str(value))
        for name, (low, high) in (ranges or {}).items():
            column = models.Document.data[name].as_string()
            if low is not None:
                query = query.filter(column >= low)
            if high is not None:
                query = query.filter(column <= high)
        return [_to_dict(d) for d in query.order_by(models.Document.created_at).all()]

    def get(self, collection: str, doc_id: str) -> dict | None:
        doc = self.db.get(models.Document, (collection, doc_id))
        return _to_dict(doc) if doc else None

    def create(self, collection: str, data: dict, doc_id: str | None = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex
        payload = {k: v for k, v in data.items() if k != "id"}
        self.db.add(models.Document(collection=collection, id=doc_id, data=payload))
        self.db.commit()
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict, merge: bool = True) -> str:
        payload = {k: v for k, v in data.items() if k != "id"}
        doc = self.db.get(models.Document, (collection, doc_id))
        if doc is None:
            self.db.add(models.Document(collection=collection, id=doc_id, data=payload))
        elif merge:
            doc.data = {**(doc.data or {}), **payload}
        else:
            doc.data = payload
        self.db.commit()
        return doc_id

    def update(self, collection: str, doc_id: str, fields: dict) -> dict:
        doc = self.db.get(models.Document, (collection, doc_id))
        if doc is None:
            raise DocumentNotFound(collection, doc_id)
        # reassign so the JSON column is flagged dirty
        doc.data = {**(doc.data or {}), **{k: v for k, v in fields.items() if k != "id"}}
        self.db.commit()
        return _to_dict(doc)

    def delete(self, collection: str, doc_id: str) -> None:
        doc = self.db.get(models.Document, (collection, doc_id))
        if doc is None:
            raise DocumentNotFound(collection, doc_id)
        self.db.delete(doc)
        self.db.commit()


def _load(store: DocumentStore, collection: str, model):
    items = []
    for raw in store.list(collection):
        try:
            items.append(model(**raw))
        except ValueError as e:
            logger.warning("skipping malformed %s/%s: %s", collection, raw.get("id"), e)
    return items


def _by_id(items: Iterable) -> dict:
    return {item.id: item for item in items if item.id}


@dataclass
class ReferenceData:
    """Workers, teams, companies and sites loaded once per view."""

    workers: list[Worker] = field(default_factory=list)
    teams: list[Team] = field(default_factory=list)
    companies: list[Company] = field(default_factory=list)
    sites: list[Site] = field(default_factory=list)

    def __post_init__(self):
        self.reindex()

    def reindex(self) -> None:
        self.worker_map = _by_id(self.workers)
        self.team_map = _by_id(self.teams)
        self.company_map = _by_id(self.companies)
        self.site_map = _by_id(self.sites)

    @classmethod
    def load(cls, store: DocumentStore) -> "ReferenceData":
        return cls(
            workers=_load(store, WORKERS, Worker),
            teams=_load(store, TEAMS, Team),
            companies=_load(store, COMPANIES, Company),
            sites=_load(store, SITES, Site),
        )

    def replace_site(self, site: Site) -> None:
        self.sites = [site if s.id == site.id else s for s in self.sites]
        self.site_map[site.id] = site

    def replace_team(self, team: Team) -> None:
        self.teams = [team if t.id == team.id else t for t in self.teams]
        self.team_map[team.id] = team
