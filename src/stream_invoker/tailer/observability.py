"""Stream tailer run metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any

_REQUIRED_COUNTERS = (
    "bootstrap_attempts_total",
    "cycles_total",
    "records_total",
    "empty_polls_total",
    "batches_dispatched_total",
    "iterator_expired_total",
)


@dataclass
class TailerRunMetrics:
    table_name: str
    metrics_path: Path | None = None
    counters: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for key in _REQUIRED_COUNTERS:
            self.counters.setdefault(key, 0)

    def bump(self, key: str, delta: int = 1) -> None:
        if key not in self.counters:
            raise ValueError(f"unsupported metric counter: {key}")
        self.counters[key] = int(self.counters.get(key, 0)) + int(delta)

    def snapshot(self) -> dict[str, Any]:
        return {
            "generated_at_utc": datetime.now(tz=timezone.utc).isoformat(),
            "table_name": self.table_name,
            "metrics": dict(self.counters),
        }

    def export(self) -> dict[str, Any]:
        payload = self.snapshot()
        if self.metrics_path is None:
            return payload
        self.metrics_path.parent.mkdir(parents=True, exist_ok=True)
        self.metrics_path.write_text(
            json.dumps(payload, sort_keys=True, ensure_ascii=True, indent=2) + "\n",
            encoding="utf-8",
        )
        return payload
