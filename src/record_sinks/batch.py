from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Generic, List, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class BatchConfig:
    """Count-based flush threshold."""

    max_rows: int = 100  # flush when the processed counter hits a multiple of this

    def __post_init__(self) -> None:
        if self.max_rows <= 0:
            raise ValueError("max_rows must be > 0")


class RecordBatcher(Generic[T]):
    """
    Per-destination row buffers with a monotonic processed counter.

    Usage:
        batcher = RecordBatcher[str](BatchConfig(max_rows=100))
        if batcher.add("events", row):
            for destination, rows in batcher.pending():
                send(destination, rows)
                batcher.clear(destination)

    The batcher never talks to the network; the owning sink decides what to
    do when `add` reports a flush point.
    """

    def __init__(self, config: BatchConfig):
        self._cfg = config
        self._buffers: Dict[str, List[T]] = {}
        self._processed = 0

    @property
    def batch_size(self) -> int:
        return self._cfg.max_rows

    @property
    def processed(self) -> int:
        """Rows accepted since construction; never reset."""
        return self._processed

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._buffers.values())

    @property
    def empty(self) -> bool:
        return not any(self._buffers.values())

    # --------------------------- public API

    def add(self, destination: str, row: T) -> bool:
        """Buffer one row. Returns True when a flush is due."""
        self._buffers.setdefault(destination, []).append(row)
        self._processed += 1
        return self._processed % self._cfg.max_rows == 0

    def pending(self) -> List[Tuple[str, List[T]]]:
        """Snapshot of non-empty buffers in first-seen destination order."""
        return [(dest, list(rows)) for dest, rows in self._buffers.items() if rows]

    def clear(self, destination: str) -> None:
        rows = self._buffers.get(destination)
        if rows:
            rows.clear()

    def reset(self) -> None:
        """Drop every buffer. The processed counter is kept."""
        self._buffers.clear()
