"""
Observer registry and hook dispatch.

Observers attach auxiliary context to entries and digests at three
checkpoints. They are configured explicitly (see plugins.load_observers)
and dispatched in registration order. A failing observer is logged and
skipped; nothing an observer returns can change an entry's core fields.
"""

import copy
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from .errors import InvalidObserverError
from .models import Entry

logger = logging.getLogger(__name__)

ON_ENTRY_CREATED = "on_entry_created"
ON_ENTRY_ANALYZED = "on_entry_analyzed"
CONTRIBUTE_TO_DIGEST = "contribute_to_digest"

HOOKS = (ON_ENTRY_CREATED, ON_ENTRY_ANALYZED, CONTRIBUTE_TO_DIGEST)


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar range handed to digest contributors."""
    start: date
    end: date


@dataclass
class HookResult:
    """One observer's non-None answer to a hook."""
    observer: str
    result: Any

    def to_dict(self) -> dict[str, Any]:
        return {"observer": self.observer, "result": self.result}


class Observer:
    """Base class for plugins.

    Subclasses set name/label/version and override any subset of the
    hook methods. `routes` may hold a FastAPI APIRouter, mounted by the
    server under /api/plugins/<name>.
    """

    name: str = ""
    label: str = ""
    version: str = ""
    description: str = ""
    routes: Optional[Any] = None

    def init(self) -> None:
        """Called once on registration."""

    def on_entry_created(self, entry: Entry) -> Any:
        return None

    def on_entry_analyzed(self, entry: Entry) -> Any:
        return None

    def contribute_to_digest(self, entries: list[Entry], date_range: DateRange) -> Any:
        return None

    def implements(self, hook: str) -> bool:
        return getattr(type(self), hook, None) is not getattr(Observer, hook)

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "label": self.label,
            "version": self.version,
            "description": self.description,
            "hooks": [h for h in HOOKS if self.implements(h)],
            "has_routes": self.routes is not None,
        }


class HookDispatcher:
    """Registry of observers, dispatched in registration order."""

    def __init__(self):
        self._observers: list[Observer] = []

    @property
    def observers(self) -> list[Observer]:
        return list(self._observers)

    def register(self, observer: Observer) -> Observer:
        """Validate and add an observer.

        Raises:
            InvalidObserverError: missing name/label/version, duplicate
                name, or a routes value that is not a router.
        """
        for required in ("name", "label", "version"):
            if not getattr(observer, required, None):
                raise InvalidObserverError(
                    f"{type(observer).__name__}: missing required field '{required}'"
                )
        if self.get(observer.name) is not None:
            raise InvalidObserverError(f"Observer already registered: {observer.name}")
        if observer.routes is not None and not callable(observer.routes):
            raise InvalidObserverError(f"{observer.name}: routes must be a router")

        observer.init()
        self._observers.append(observer)
        logger.info(f"[Plugins] Loaded: {observer.name} v{observer.version}")
        return observer

    def get(self, name: str) -> Optional[Observer]:
        for observer in self._observers:
            if observer.name == name:
                return observer
        return None

    def describe(self) -> list[dict[str, Any]]:
        return [o.describe() for o in self._observers]

    def dispatch(self, hook: str, *args) -> list[HookResult]:
        """Call `hook` on every observer implementing it.

        Each observer gets its own deep copy of the arguments. Exceptions
        are logged per observer and never propagate.
        """
        if hook not in HOOKS:
            raise ValueError(f"Unknown hook: {hook}")

        results = []
        for observer in self._observers:
            if not observer.implements(hook):
                continue
            try:
                result = getattr(observer, hook)(*copy.deepcopy(args))
            except Exception as e:
                logger.error(f"[Plugins] Hook {hook} failed for {observer.name}: {e}", exc_info=True)
                continue
            if result is not None:
                results.append(HookResult(observer.name, result))
        return results
