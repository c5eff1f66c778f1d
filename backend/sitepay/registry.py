import logging
from typing import Callable, Dict, List, Literal, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from .store import SYSTEM_COMPONENTS, DocumentStore

logger = logging.getLogger(__name__)


class ComponentConfig(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    category: Literal['WIDGET', 'FEATURE', 'PAGE_SECTION'] = 'FEATURE'
    is_enabled: bool = True
    # empty: every role
    allowed_roles: List[str] = []


COMPONENT_REGISTRY = [
    ComponentConfig(id='weather-widget', name='Weather Widget', category='WIDGET',
                    description='Dashboard weather display'),
    ComponentConfig(id='worker-table', name='Manpower Table', category='PAGE_SECTION',
                    description='Main worker list table'),
    ComponentConfig(id='bulk-upload-btn', name='Bulk Upload Button', category='FEATURE',
                    description='Button to upload Excel/Images'),
    ComponentConfig(id='ai-analysis', name='AI Analysis', category='FEATURE',
                    description='Gemini AI integration features'),
]

Listener = Callable[[Dict[str, ComponentConfig]], None]


class ComponentRegistry:
    """Process-wide component flags with change notification.

    Stored overrides are read on first use; each change hands every
    subscriber the full current map.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory
        self._configs: Dict[str, ComponentConfig] = {}
        self._listeners: List[Listener] = []
        self._loaded = False

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._configs = {c.id: c.model_copy() for c in COMPONENT_REGISTRY}
        with self._session_factory() as db:
            stored = DocumentStore(db).list(SYSTEM_COMPONENTS)
        for raw in stored:
            base = self._configs.get(raw["id"])
            merged = {**(base.model_dump() if base else {"name": raw["id"]}), **raw}
            try:
                self._configs[raw["id"]] = ComponentConfig(**merged)
            except ValueError:
                logger.warning("ignoring malformed component config %s", raw.get("id"))
        self._loaded = True

    def configs(self) -> Dict[str, ComponentConfig]:
        self._ensure_loaded()
        return dict(self._configs)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.configs()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("component listener %r failed", listener)

    def get_config(self, component_id: str) -> Optional[ComponentConfig]:
        self._ensure_loaded()
        return self._configs.get(component_id)

    def is_enabled(self, component_id: str) -> bool:
        config = self.get_config(component_id)
        return config.is_enabled if config else True

    def update_config(self, component_id: str, updates: dict) -> ComponentConfig:
        self._ensure_loaded()
        current = self._configs.get(component_id)
        base = current.model_dump() if current else {"id": component_id, "name": component_id}
        config = ComponentConfig(**{**base, **updates, "id": component_id})
        with self._session_factory() as db:
            DocumentStore(db).set(SYSTEM_COMPONENTS, component_id, config.model_dump(exclude={"id"}))
        self._configs[component_id] = config
        self._notify()
        return config

    def reset_to_registry(self) -> None:
        for component in COMPONENT_REGISTRY:
            self.update_config(component.id, component.model_dump())
