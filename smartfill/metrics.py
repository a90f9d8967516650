from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any


@dataclass
class MetricsCollector:
    counters: Counter[str] = field(default_factory=Counter)
    latencies_ms: list[int] = field(default_factory=list)

    def increment(self, name: str, value: int = 1) -> None:
        self.counters[name] += value

    def observe_latency(self, value_ms: int) -> None:
        self.latencies_ms.append(value_ms)

    def snapshot(self) -> dict[str, Any]:
        p95 = 0
        if self.latencies_ms:
            ordered = sorted(self.latencies_ms)
            idx = int(0.95 * (len(ordered) - 1))
            p95 = ordered[idx]
        return {
            "documents_extracted_total": self.counters.get("documents_extracted_total", 0),
            "documents_empty_total": self.counters.get("documents_empty_total", 0),
            "fields_detected_total": self.counters.get("fields_detected_total", 0),
            "reconciliations_total": self.counters.get("reconciliations_total", 0),
            "vendor_matches_total": self.counters.get("vendor_matches_total", 0),
            "extraction_latency_p95_ms": p95,
        }
