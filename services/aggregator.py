"""Aggregation logic for grouped panel readings."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from models.records import Aggregate, PanelId, Reading
from services.transformer import round2


PANEL_COUNT = 3
PANEL_CAPACITY = 120000
INSTALLED_CAPACITY = PANEL_COUNT * PANEL_CAPACITY


class Aggregator(ABC):
    """Groups each date's readings by panel and summarizes the values.

    Subclasses decide how a panel's values collapse into one number; the
    partitioning is shared. Panels whose readings all lack a value still get
    an aggregate computed over the empty set.
    """

    def aggregate(
        self, grouped: Mapping[str, Sequence[Reading]]
    ) -> Dict[str, Tuple[Aggregate, ...]]:
        result: Dict[str, Tuple[Aggregate, ...]] = {}
        for date_key in sorted(grouped):
            partitions = self._partition(grouped[date_key])
            result[date_key] = tuple(
                Aggregate(panel=panel, summary=self.summarize(values))
                for panel, values in partitions.items()
            )
        return result

    @abstractmethod
    def summarize(self, values: Sequence[float]) -> float:
        """Collapse one panel's non-null values for a date into a summary."""

    @staticmethod
    def _partition(readings: Iterable[Reading]) -> Dict[PanelId, List[float]]:
        partitions: Dict[PanelId, List[float]] = {}
        for reading in readings:
            values = partitions.setdefault(reading.panel, [])
            if reading.value is not None:
                values.append(reading.value)
        return partitions


class MeanAggregator(Aggregator):
    """Average voltage; zero and negative readings are sensor noise."""

    def summarize(self, values: Sequence[float]) -> float:
        positive = [value for value in values if value > 0]
        if not positive:
            return 0.0
        return round2(sum(positive) / len(positive))


class PowerPercentageAggregator(Aggregator):
    """Share of the installed capacity produced over the day, in percent."""

    def __init__(self, capacity: float = INSTALLED_CAPACITY) -> None:
        self.capacity = capacity

    def summarize(self, values: Sequence[float]) -> float:
        return round2(sum(values) / self.capacity * 100)
