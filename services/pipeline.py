"""Refresh orchestration from raw feed snapshots to grouped aggregates."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional, Tuple

from models.records import Aggregate, PanelId, RawRecord, Reading
from services.decoder import MessageDecoder
from services.policies import PipelinePolicy
from services.timestamps import TimestampNormalizer

logger = logging.getLogger(__name__)

RefreshListener = Callable[["PipelineSnapshot"], None]


@dataclass(frozen=True)
class PipelineSnapshot:
    """Immutable result of one refresh; replaced wholesale on the next one."""

    policy: str
    readings: Tuple[Reading, ...] = ()
    grouped: Mapping[str, Tuple[Reading, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    aggregates: Mapping[str, Tuple[Aggregate, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    refreshed_at: Optional[datetime] = None

    def date_keys(self) -> List[str]:
        return sorted(self.grouped)

    def aggregates_for(self, date_key: str) -> Tuple[Aggregate, ...]:
        return self.aggregates.get(date_key, ())

    def aggregate_for(self, date_key: str, panel: PanelId) -> float:
        for aggregate in self.aggregates_for(date_key):
            if aggregate.panel is panel:
                return aggregate.summary
        return 0.0

    def readings_for(self, date_key: str, panel: PanelId) -> Tuple[Reading, ...]:
        return tuple(
            reading for reading in self.grouped.get(date_key, ()) if reading.panel is panel
        )


def _sort_key(reading: Reading) -> tuple:
    # Unparsed instants go last, in feed key order.
    if reading.instant is None:
        return (1, datetime.max, reading.key)
    return (0, reading.instant, reading.key)


class PipelineController:
    """Owns the latest snapshot and rebuilds it on every refresh."""

    def __init__(
        self,
        policy: PipelinePolicy,
        decoder: MessageDecoder,
        normalizer: Optional[TimestampNormalizer] = None,
    ) -> None:
        self.policy = policy
        self.decoder = decoder
        self.normalizer = normalizer or TimestampNormalizer()
        self._snapshot = PipelineSnapshot(policy=policy.name)
        self._lock = Lock()
        self._listeners: List[RefreshListener] = []

    @property
    def snapshot(self) -> PipelineSnapshot:
        return self._snapshot

    def add_listener(self, listener: RefreshListener) -> None:
        self._listeners.append(listener)

    def refresh(self, records: Mapping[str, RawRecord]) -> PipelineSnapshot:
        """Rebuild all derived state from a complete feed snapshot."""
        with self._lock:
            start_time = time.perf_counter()
            readings = [self._build_reading(key, records[key]) for key in sorted(records, key=str)]
            readings.sort(key=_sort_key)

            grouped: dict[str, list[Reading]] = {}
            for reading in readings:
                grouped.setdefault(reading.date_key, []).append(reading)
            frozen_groups = {date_key: tuple(items) for date_key, items in grouped.items()}

            aggregates = self.policy.aggregator.aggregate(frozen_groups)
            snapshot = PipelineSnapshot(
                policy=self.policy.name,
                readings=tuple(readings),
                grouped=MappingProxyType(frozen_groups),
                aggregates=MappingProxyType(aggregates),
                refreshed_at=datetime.now(),
            )
            self._snapshot = snapshot

            logger.info(
                "Pipeline refreshed",
                extra={
                    "policy": self.policy.name,
                    "record_count": len(readings),
                    "date_count": len(frozen_groups),
                    "null_count": sum(1 for r in readings if r.value is None),
                    "unknown_instant_count": sum(1 for r in readings if r.instant is None),
                    "refresh_ms": int((time.perf_counter() - start_time) * 1000),
                },
            )

            for listener in self._listeners:
                try:
                    listener(snapshot)
                except Exception:
                    logger.exception(
                        "Refresh listener failed",
                        extra={"policy": self.policy.name, "reason": "listener"},
                    )
            return snapshot

    def date_keys(self) -> List[str]:
        return self._snapshot.date_keys()

    def aggregates_for(self, date_key: str) -> Tuple[Aggregate, ...]:
        return self._snapshot.aggregates_for(date_key)

    def aggregate_for(self, date_key: str, panel: PanelId) -> float:
        return self._snapshot.aggregate_for(date_key, panel)

    def readings_for(self, date_key: str, panel: PanelId) -> Tuple[Reading, ...]:
        return self._snapshot.readings_for(date_key, panel)

    def _build_reading(self, key: str, record: RawRecord) -> Reading:
        if not isinstance(record, RawRecord):
            record = RawRecord.from_mapping(record)
        decoded = self.decoder.decode(record)
        instant = self.normalizer.parse_instant(decoded.raw_time_text)
        return Reading(
            key=str(key),
            panel=decoded.panel,
            raw_value=decoded.raw_value,
            value=self._transform(key, decoded.raw_value, instant),
            raw_time_text=decoded.raw_time_text,
            instant=instant,
            date_key=self.normalizer.to_date_key(decoded.raw_time_text),
        )

    def _transform(
        self, key: str, raw_value: Optional[int], instant: Optional[datetime]
    ) -> Optional[float]:
        if raw_value is None:
            return None
        try:
            return self.policy.transformer.transform(raw_value, instant)
        except ArithmeticError:
            logger.debug(
                "Raw value out of range",
                extra={"record_key": key, "reason": "overflow"},
            )
            return None
