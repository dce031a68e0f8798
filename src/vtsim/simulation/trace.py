"""Event trace recording and querying.

When an Environment is given an EventTrace, every processed event and
every state change of processes and shared primitives is appended to it
in the order it happened. The trace is the replay record used to check
determinism, and it can be exported for external analysis layers.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from vtsim.models.enums import TraceEventType


@dataclass
class TraceRecord:
    """A single trace entry.

    Records what happened, when, and to which entity. ``sequence`` is the
    position of the record in the trace, so same-time records keep their
    relative order.
    """

    time: float
    """Virtual time at which the record was written"""

    sequence: int
    """Position in the trace (0-based)"""

    record_type: TraceEventType
    """Category of record"""

    entity_id: str
    """Name of the event, process or primitive involved"""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional record-specific data"""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for export."""
        return {
            "time": self.time,
            "sequence": self.sequence,
            "record_type": self.record_type.value,
            "entity_id": self.entity_id,
            **self.details,
        }

    def key(self) -> tuple:
        """Comparable identity of this record, used for trace signatures."""
        return (
            self.time,
            self.record_type.value,
            self.entity_id,
            tuple(sorted((k, repr(v)) for k, v in self.details.items())),
        )


class EventTrace:
    """Collects and queries trace records.

    The trace is append-only. Records are already in processing order, so
    queries preserve that order rather than re-sorting by time.
    """

    def __init__(self):
        self._records: list[TraceRecord] = []

    def log(
        self,
        time: float,
        record_type: TraceEventType,
        entity_id: str,
        **details: Any,
    ) -> TraceRecord:
        """Create and append a record."""
        record = TraceRecord(
            time=time,
            sequence=len(self._records),
            record_type=record_type,
            entity_id=entity_id,
            details=details,
        )
        self._records.append(record)
        return record

    # === Queries ===

    @property
    def records(self) -> list[TraceRecord]:
        """All records in processing order."""
        return list(self._records)

    def filter_by_type(self, record_type: TraceEventType) -> list[TraceRecord]:
        """Get records of a specific type."""
        return [r for r in self._records if r.record_type == record_type]

    def filter_by_entity(self, entity_id: str) -> list[TraceRecord]:
        """Get records for a specific entity."""
        return [r for r in self._records if r.entity_id == entity_id]

    def filter_by_time(
        self,
        start: float = 0,
        end: Optional[float] = None,
    ) -> list[TraceRecord]:
        """Get records within a time range (inclusive)."""
        records = [r for r in self._records if r.time >= start]
        if end is not None:
            records = [r for r in records if r.time <= end]
        return records

    def signature(self) -> tuple:
        """Order-sensitive fingerprint of the whole trace.

        Two runs of the same model with the same seed and call order
        produce equal signatures.
        """
        return tuple(r.key() for r in self._records)

    # === Export ===

    def to_list(self) -> list[dict[str, Any]]:
        """Export all records as list of dicts."""
        return [r.to_dict() for r in self._records]

    def to_dataframe(self):
        """Export records to a pandas DataFrame."""
        import pandas as pd

        columns = ["time", "sequence", "record_type", "entity_id"]
        return pd.DataFrame(self.to_list(), columns=None if self._records else columns)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def __repr__(self) -> str:
        return f"EventTrace({len(self._records)} records)"
