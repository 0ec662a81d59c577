from __future__ import annotations

from typing import Any, Callable, List, Optional

from fanout.core.config import settings
from fanout.utils.logger import get_logger

logger = get_logger(__name__)

Observer = Callable[[Any], None]


class Observers:
    """
    Fan-out of events to subscribed callbacks.

    Callbacks run synchronously and must return quickly. A callback that
    raises is logged and skipped; the error never reaches the emitter.
    """

    def __init__(self, observers: Optional[List[Observer]] = None) -> None:
        self._observers: List[Observer] = list(observers or [])

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def emit(self, event: Any) -> None:
        for observer in list(self._observers):
            try:
                observer(event)
            except Exception as exc:  # noqa: BLE001 - observers must not break execution
                logger.error(
                    "observer_error",
                    observer=getattr(observer, "__name__", type(observer).__name__),
                    event_type=type(event).__name__,
                    error=str(exc),
                )

    def __len__(self) -> int:
        return len(self._observers)


_default: Optional[Observers] = None


def get_default_observers() -> Observers:
    """Process-wide registry with the logging (and metrics) observers attached."""
    global _default
    if _default is None:
        from .metrics import MetricsObserver
        from .observers import LoggingObserver

        registry = Observers([LoggingObserver()])
        if settings.METRICS_ENABLED:
            registry.subscribe(MetricsObserver())
        _default = registry
    return _default
