"""Domain models shared across services."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


UNKNOWN_DATE_KEY = "Fecha desconocida"


class PanelId(str, Enum):
    """Solar installations reporting over SMS; values are display names."""

    CALEDONIA = "Panel CALEDONIA"
    TUGULA = "Panel TUGULA"
    SAN_CRISTOBAL = "Panel SAN CRISTOBAL"
    UNKNOWN = "Panel desconocido"

    @property
    def display_name(self) -> str:
        return self.value

    @property
    def short_name(self) -> str:
        """Display name without the ``Panel`` prefix, used for sheet names."""
        return self.value.removeprefix("Panel ")

    @classmethod
    def from_name(cls, name: str) -> "PanelId":
        """Resolve a panel by enum name or display name, ignoring case.

        Anything else resolves to UNKNOWN.
        """
        candidate = name.strip().casefold()
        for panel in cls:
            if candidate in (panel.name.casefold(), panel.value.casefold()):
                return panel
        return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class RawRecord:
    """One telemetry message as delivered by the realtime feed."""

    message: str
    sender: str

    @classmethod
    def from_mapping(cls, payload: Any) -> "RawRecord":
        """Build a record from a feed entry, tolerating missing or odd fields."""
        if not isinstance(payload, Mapping):
            return cls(message="", sender="")
        message = payload.get("message")
        sender = payload.get("sender")
        return cls(
            message=message if isinstance(message, str) else "",
            sender=sender if isinstance(sender, str) else "",
        )


@dataclass(frozen=True, slots=True)
class DecodedMessage:
    raw_time_text: str
    raw_value: Optional[int]
    panel: PanelId


@dataclass(frozen=True, slots=True)
class Reading:
    """A decoded, normalized and transformed telemetry sample.

    ``value`` is ``None`` when the payload carried no numeric suffix and
    ``instant`` is ``None`` when the timestamp could not be parsed.
    """

    key: str
    panel: PanelId
    raw_value: Optional[int]
    value: Optional[float]
    raw_time_text: str
    instant: Optional[datetime]
    date_key: str


@dataclass(frozen=True, slots=True)
class Aggregate:
    """Per-date, per-panel summary; its unit depends on the active policy."""

    panel: PanelId
    summary: float
