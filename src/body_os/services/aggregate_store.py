"""In-memory holder for today's aggregate."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from dataclasses import replace as copy_aggregate
from typing import Protocol

from body_os.domain.aggregates import DailyAggregate
from body_os.domain.errors import StaleReconciliation

_logger = logging.getLogger(__name__)

Listener = Callable[[DailyAggregate | None], None]


class AggregateMirror(Protocol):
    """Durable copy of the store, written after every replace."""

    def read(self) -> DailyAggregate | None:
        """Return the mirrored aggregate, if any."""

    def write(self, aggregate: DailyAggregate | None) -> None:
        """Persist the aggregate."""


@dataclass
class LocalAggregateStore:
    """Holds the best-known aggregate for today and notifies subscribers.

    Every write goes through `replace`, which bumps `version`. The version is
    what the coordinator uses to tell whether a reconciliation is stale.
    """

    mirror: AggregateMirror | None = None
    _current: DailyAggregate | None = field(default=None, init=False)
    _version: int = field(default=0, init=False)
    _listeners: list[Listener] = field(default_factory=list, init=False)

    @property
    def version(self) -> int:
        """Return the number of writes applied so far."""
        return self._version

    def get_current(self) -> DailyAggregate | None:
        """Return the held aggregate."""
        return self._current

    def snapshot(self) -> DailyAggregate | None:
        """Return an independent copy of the held aggregate."""
        if self._current is None:
            return None
        return copy_aggregate(self._current)

    def replace(self, aggregate: DailyAggregate | None) -> int:
        """Overwrite the held aggregate and return the new version."""
        self._current = aggregate
        self._version += 1
        self._write_mirror(aggregate)
        self._notify(aggregate)
        return self._version

    def replace_if_version(
        self, aggregate: DailyAggregate | None, expected_version: int
    ) -> int:
        """Overwrite only if nothing was written since `expected_version`."""
        if self._version != expected_version:
            raise StaleReconciliation(expected_version, self._version)
        return self.replace(aggregate)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener and return its unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load_from_mirror(self) -> DailyAggregate | None:
        """Restore the held aggregate from the mirror without rewriting it."""
        if self.mirror is None:
            return None
        try:
            aggregate = self.mirror.read()
        except Exception as exc:
            _logger.warning("Failed to read aggregate mirror: %s", exc)
            return None
        self._current = aggregate
        self._version += 1
        self._notify(aggregate)
        return aggregate

    def _write_mirror(self, aggregate: DailyAggregate | None) -> None:
        if self.mirror is None:
            return
        try:
            self.mirror.write(aggregate)
        except Exception as exc:
            _logger.warning("Failed to write aggregate mirror: %s", exc)

    def _notify(self, aggregate: DailyAggregate | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(aggregate)
            except Exception:
                _logger.exception("Aggregate listener failed")
