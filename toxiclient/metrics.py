"""Byte counters for traffic passing through proxies."""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Tuple

NAMESPACE = "toxiproxy"
PROXY_LABELS = ("direction", "proxy", "listener", "upstream")


class _Counter:
    """A single monotonically increasing value."""

    def __init__(self) -> None:
        self._value = 0.0
        self._lock = threading.Lock()

    def add(self, amount: float) -> None:
        if amount < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            self._value += amount

    @property
    def value(self) -> float:
        with self._lock:
            return self._value


class CounterVec:
    """A family of counters that share a name and are told apart by label values."""

    def __init__(
        self, name: str, labels: Iterable[str], namespace: str = "", subsystem: str = ""
    ) -> None:
        self.name = "_".join(part for part in (namespace, subsystem, name) if part)
        self.labels: Tuple[str, ...] = tuple(labels)
        self._children: Dict[Tuple[str, ...], _Counter] = {}
        self._lock = threading.Lock()

    def _key(self, values: Tuple[str, ...]) -> Tuple[str, ...]:
        if len(values) != len(self.labels):
            raise ValueError(
                f"{self.name}: expected {len(self.labels)} label values, got {len(values)}"
            )
        return tuple(values)

    def with_label_values(self, *args: str) -> _Counter:
        """Return the counter for these label values, creating it if needed."""
        key = self._key(args)
        with self._lock:
            return self._children.setdefault(key, _Counter())

    def add(self, amount: float, *args: str) -> None:
        """Add ``amount`` to the counter for these label values."""
        self.with_label_values(*args).add(amount)

    def value(self, *args: str) -> float:
        """Return the current value for these label values; zero if never counted."""
        key = self._key(args)
        with self._lock:
            child = self._children.get(key)
        return child.value if child is not None else 0.0


class ProxyMetricCollectors:
    """Counters of bytes received from and sent to each proxy's peers."""

    def __init__(self) -> None:
        self.proxy_labels: Tuple[str, ...] = PROXY_LABELS
        self.received_bytes_total = CounterVec(
            "received_bytes_total", self.proxy_labels, NAMESPACE, "proxy"
        )
        self.sent_bytes_total = CounterVec(
            "sent_bytes_total", self.proxy_labels, NAMESPACE, "proxy"
        )
        self._collectors: List[CounterVec] = [
            self.received_bytes_total,
            self.sent_bytes_total,
        ]

    def collectors(self) -> List[CounterVec]:
        """Return every counter family, in registration order."""
        return list(self._collectors)