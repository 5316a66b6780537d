"""Unit tests for raw message decoding."""

from __future__ import annotations

import pytest

from models.records import PanelId, RawRecord
from services.decoder import MessageDecoder, build_sender_table
from settings import DEFAULT_PANEL_SENDERS


@pytest.fixture()
def decoder() -> MessageDecoder:
    return MessageDecoder(build_sender_table(DEFAULT_PANEL_SENDERS))


def test_decode_well_formed_message(decoder: MessageDecoder) -> None:
    record = RawRecord(message=' 25/08/01,22:48:08-20 "V:512"', sender="+593982138667")

    decoded = decoder.decode(record)

    assert decoded.raw_time_text == "25/08/01,22:48:08-20"
    assert decoded.raw_value == 512
    assert decoded.panel is PanelId.CALEDONIA


def test_decode_uses_trailing_digits_of_quoted_segment(decoder: MessageDecoder) -> None:
    record = RawRecord(message='25/08/01,10:00:00"A1 B22 "ignored 99', sender="+593996002370")

    decoded = decoder.decode(record)

    assert decoded.raw_value == 22
    assert decoded.panel is PanelId.TUGULA


@pytest.mark.parametrize(
    "message",
    [
        "25/08/01,10:00:00",
        '25/08/01,10:00:00"',
        '25/08/01,10:00:00"V:12x"',
        '25/08/01,10:00:00"V:٣٤"',
        "",
    ],
)
def test_decode_without_numeric_suffix_yields_none(decoder: MessageDecoder, message: str) -> None:
    decoded = decoder.decode(RawRecord(message=message, sender="+593962380047"))

    assert decoded.raw_value is None
    assert decoded.panel is PanelId.SAN_CRISTOBAL


def test_unknown_sender_maps_to_unknown_panel(decoder: MessageDecoder) -> None:
    decoded = decoder.decode(RawRecord(message='25/08/01,10:00:00"7"', sender="+000"))

    assert decoded.panel is PanelId.UNKNOWN
    assert decoded.panel.display_name == "Panel desconocido"


def test_sender_lookup_is_exact(decoder: MessageDecoder) -> None:
    assert decoder.resolve_panel(" +593982138667") is PanelId.UNKNOWN


def test_sender_table_accepts_names_in_any_case() -> None:
    table = build_sender_table({"+1": "Panel TUGULA", "+2": "caledonia", "+3": "nowhere"})

    assert table == {
        "+1": PanelId.TUGULA,
        "+2": PanelId.CALEDONIA,
        "+3": PanelId.UNKNOWN,
    }


def test_decode_tolerates_huge_digit_runs(decoder: MessageDecoder) -> None:
    record = RawRecord(message='25/08/01,10:00:00"' + "9" * 6000 + '"', sender="+000")

    decoded = decoder.decode(record)

    assert decoded.raw_value is None or decoded.raw_value > 0
