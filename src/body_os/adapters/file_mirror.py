"""JSON file mirror for the local aggregate store."""

from dataclasses import dataclass
from pathlib import Path

from pydantic import TypeAdapter

from body_os.domain.aggregates import DailyAggregate
from body_os.services.aggregate_store import AggregateMirror

_ADAPTER = TypeAdapter(DailyAggregate | None)


@dataclass
class JsonFileAggregateMirror(AggregateMirror):
    """Keeps the last known aggregate on disk for offline restarts."""

    path: Path

    def read(self) -> DailyAggregate | None:
        """Return the stored aggregate, or None if nothing was written yet."""
        if not self.path.exists():
            return None
        return _ADAPTER.validate_json(self.path.read_bytes())

    def write(self, aggregate: DailyAggregate | None) -> None:
        """Atomically replace the stored aggregate."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(_ADAPTER.dump_json(aggregate))
        tmp_path.replace(self.path)
