"""Decoding of raw SMS telemetry messages."""

from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

from models.records import DecodedMessage, PanelId, RawRecord

logger = logging.getLogger(__name__)

_TRAILING_DIGITS = re.compile(r"\d+$", re.ASCII)


def build_sender_table(panel_senders: Mapping[str, str]) -> dict[str, PanelId]:
    """Resolve configured panel names (``TUGULA`` or ``Panel TUGULA``) to ids."""
    return {sender: PanelId.from_name(name) for sender, name in panel_senders.items()}


class MessageDecoder:
    """Splits a message into its header text, numeric payload and panel.

    A message looks like ``25/08/01,22:48:08-20"V:512"``: everything before
    the first quote is the modem header, the quoted segment ends in the raw
    sensor count. Malformed input never raises; it decodes to an empty
    header, a ``None`` payload or the UNKNOWN panel.
    """

    def __init__(self, sender_table: Mapping[str, PanelId]) -> None:
        self._sender_table = dict(sender_table)

    def decode(self, raw: RawRecord) -> DecodedMessage:
        message = raw.message if isinstance(raw.message, str) else ""
        parts = message.split('"')
        raw_time_text = parts[0].strip()
        payload = parts[1].strip() if len(parts) > 1 else ""
        return DecodedMessage(
            raw_time_text=raw_time_text,
            raw_value=self._parse_payload(payload),
            panel=self.resolve_panel(raw.sender),
        )

    def resolve_panel(self, sender: str) -> PanelId:
        if not isinstance(sender, str):
            return PanelId.UNKNOWN
        return self._sender_table.get(sender, PanelId.UNKNOWN)

    @staticmethod
    def _parse_payload(payload: str) -> Optional[int]:
        match = _TRAILING_DIGITS.search(payload)
        if match is None:
            if payload:
                logger.debug("Payload has no numeric suffix", extra={"reason": payload[:40]})
            return None
        try:
            return int(match.group(0))
        except ValueError:
            # Digit runs past the interpreter's int conversion limit.
            logger.debug("Payload digits exceed int limit", extra={"reason": "too_long"})
            return None
