from __future__ import annotations
import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from models.records import RawRecord
from settings import get_settings

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[Dict[str, RawRecord]], None]


class MockRealtimeFeed:
    """In-memory stand-in for the realtime database node holding raw SMS records.

    Subscribers receive the full snapshot immediately and again after every
    change, mirroring a push-based value listener.
    """

    def __init__(self, name: str, seed_path: Optional[Path] = None) -> None:
        self.name = name
        self._records: Dict[str, RawRecord] = {}
        self._subscribers: List[SnapshotCallback] = []
        self._lock = Lock()
        if seed_path:
            self._records.update(load_snapshot_file(seed_path))

    def push(self, record: RawRecord) -> str:
        key = f"-{uuid4().hex[:19]}"
        self.put(key, record)
        return key

    def put(self, key: str, record: RawRecord) -> None:
        with self._lock:
            self._records[key] = record
        self._notify()

    def get(self, key: str) -> RawRecord:
        with self._lock:
            record = self._records.get(key)
        if record is None:
            raise KeyError(f"Record with key {key!r} not found in feed {self.name!r}.")
        return record

    def delete(self, key: str) -> None:
        with self._lock:
            if key not in self._records:
                raise KeyError(f"Record with key {key!r} not found in feed {self.name!r}.")
            del self._records[key]
        self._notify()

    def snapshot(self) -> Dict[str, RawRecord]:
        with self._lock:
            return dict(self._records)

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Register ``callback`` and deliver the current snapshot to it at once."""
        with self._lock:
            self._subscribers.append(callback)
        callback(self.snapshot())

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        snapshot = self.snapshot()
        for callback in subscribers:
            callback(dict(snapshot))


def load_snapshot_file(path: Path) -> Dict[str, RawRecord]:
    """Read a ``{key: {message, sender}}`` JSON export of the feed."""
    try:
        data = json.loads(path.read_text(encoding="utf-8") or "{}")
    except (OSError, json.JSONDecodeError) as exc:
        raise ValueError(f"Cannot read feed snapshot {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Feed snapshot {path} must be a JSON object.")
    records = {str(key): RawRecord.from_mapping(payload) for key, payload in data.items()}
    logger.info("Loaded feed snapshot", extra={"record_count": len(records)})
    return records


@lru_cache
def build_default_feed(
    name: Optional[str] = None,
    seed_path: Optional[str] = None,
) -> MockRealtimeFeed:
    settings = get_settings()
    feed_name = settings.feed_name if name is None else name
    feed_seed = settings.feed_seed_path if seed_path is None else seed_path
    path = Path(feed_seed) if feed_seed else None
    return MockRealtimeFeed(name=feed_name, seed_path=path)
