"""In-memory labeled counter registry rendered in the Prometheus text format."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

LabelKey = Tuple[Tuple[str, str], ...]


def _labels_to_key(labels: Mapping[str, str] | None) -> LabelKey:
    if not labels:
        return tuple()
    return tuple(sorted((str(k), str(v)) for k, v in labels.items()))


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


@dataclass(frozen=True)
class Sample:
    """Value of one counter series at snapshot time."""

    labels: LabelKey
    value: int

    def label_dict(self) -> Dict[str, str]:
        return dict(self.labels)


@dataclass(frozen=True)
class MetricFamily:
    name: str
    help_text: str
    samples: Tuple[Sample, ...]


class CounterRegistry:
    """Thread-safe set of named, labeled, monotonically increasing counters.

    A single lock guards every family. Increments and snapshots hold it for a
    few dictionary operations only, so the ingest thread and concurrent
    scrapes never observe a partially updated counter.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._help: Dict[str, str] = {}
        self._counters: Dict[str, Counter[LabelKey]] = {}

    def declare(self, name: str, help_text: str) -> None:
        """Register a counter family; declaring the same family twice is a no-op."""

        with self._lock:
            existing = self._help.get(name)
            if existing is not None:
                if existing != help_text:
                    raise ValueError(f"Counter '{name}' already declared with different help text")
                return
            self._help[name] = help_text
            self._counters[name] = Counter()

    def increment(self, name: str, labels: Mapping[str, str] | None = None, value: int = 1) -> None:
        if value < 0:
            raise ValueError("Counters can only be incremented by non-negative values")
        key = _labels_to_key(labels)
        with self._lock:
            self._family(name)[key] += value

    def touch(self, name: str, labels: Mapping[str, str] | None = None) -> None:
        """Create the series at zero if it has not been observed yet."""

        key = _labels_to_key(labels)
        with self._lock:
            family = self._family(name)
            if key not in family:
                family[key] = 0

    def value(self, name: str, labels: Mapping[str, str] | None = None) -> int:
        key = _labels_to_key(labels)
        with self._lock:
            return self._family(name).get(key, 0)

    def snapshot(self) -> Tuple[MetricFamily, ...]:
        with self._lock:
            copied = [(name, self._help[name], dict(series)) for name, series in self._counters.items()]

        families = []
        for name, help_text, series in sorted(copied):
            samples = tuple(Sample(labels=key, value=value) for key, value in sorted(series.items()))
            families.append(MetricFamily(name=name, help_text=help_text, samples=samples))
        return tuple(families)

    def render(self) -> str:
        lines: list[str] = []
        for family in self.snapshot():
            lines.append(f"# HELP {family.name} {_escape_help(family.help_text)}")
            lines.append(f"# TYPE {family.name} counter")
            for sample in family.samples:
                if sample.labels:
                    rendered = ",".join(f'{k}="{_escape_label_value(v)}"' for k, v in sample.labels)
                    lines.append(f"{family.name}{{{rendered}}} {sample.value}")
                else:
                    lines.append(f"{family.name} {sample.value}")
        if not lines:
            return ""
        return "\n".join(lines) + "\n"

    def _family(self, name: str) -> Counter[LabelKey]:
        family = self._counters.get(name)
        if family is None:
            raise KeyError(f"Counter '{name}' has not been declared")
        return family
