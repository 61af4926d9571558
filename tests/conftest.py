"""Pytest configuration and shared fixtures."""

import os
from pathlib import Path

import pytest
import reportlab
from fontTools.fontBuilder import FontBuilder
from fontTools.pens.t2CharStringPen import T2CharStringPen

from roomledger.models import MeterReadings, Room
from roomledger.services.config import reset_settings

# reportlab ships Bitstream Vera TrueType fonts, used as real font assets
REPORTLAB_FONTS = Path(reportlab.__file__).parent / "fonts"


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Run every test with fresh settings and no stray .env file."""
    monkeypatch.chdir(tmp_path)
    for name in ("LOCALE", "LOG_LEVEL", "DATABASE_URL", "FONT_REGULAR_PATH", "FONT_BOLD_PATH"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def regular_font_path() -> str:
    """Path to a real regular-weight TrueType font."""
    return os.fspath(REPORTLAB_FONTS / "Vera.ttf")


@pytest.fixture
def bold_font_path() -> str:
    """Path to a real bold-weight TrueType font."""
    return os.fspath(REPORTLAB_FONTS / "VeraBd.ttf")


@pytest.fixture
def room() -> Room:
    """Room 01 with the standard rent and trash/security fee."""
    return Room(id="room-01", code="01", rent=3_500_000, trash_security=30_000)


@pytest.fixture
def march_readings() -> MeterReadings:
    """Readings used by the end-to-end billing example."""
    return MeterReadings(
        elec_old=100,
        elec_new=150,
        water_old=10,
        water_new=15,
        elec_price=3500,
        water_price=14000,
    )


def _box_charstring(advance: int):
    pen = T2CharStringPen(advance, None)
    pen.moveTo((50, 0))
    pen.lineTo((50, 700))
    pen.curveTo((150, 760), (350, 760), (450, 700))
    pen.lineTo((450, 0))
    pen.closePath()
    return pen.getCharString()


@pytest.fixture
def cff_font_path(tmp_path) -> str:
    """Path to a minimal OpenType font with CFF (cubic) outlines."""
    glyph_order = [".notdef", "space"] + [chr(c) for c in range(ord("A"), ord("Z") + 1)]
    char_map = {32: "space"}
    char_map.update({ord(name): name for name in glyph_order[2:]})

    builder = FontBuilder(1000, isTTF=False)
    builder.setupGlyphOrder(glyph_order)
    builder.setupCharacterMap(char_map)
    names = {
        "familyName": "ReceiptTest",
        "styleName": "Regular",
        "uniqueFontIdentifier": "ReceiptTest-Regular",
        "fullName": "ReceiptTest Regular",
        "psName": "ReceiptTest-Regular",
        "version": "1.0",
    }
    builder.setupNameTable(names)

    charstrings = {name: _box_charstring(500) for name in glyph_order}
    builder.setupCFF(names["psName"], {"FullName": names["fullName"]}, charstrings, {})
    builder.setupHorizontalMetrics(
        {name: (500, charstrings[name].calcBounds(None)[0]) for name in glyph_order}
    )
    builder.setupHorizontalHeader(ascent=800, descent=-200)
    builder.setupOS2(sTypoAscender=800, sTypoDescender=-200, usWinAscent=800, usWinDescent=200)
    builder.setupPost()

    path = tmp_path / "ReceiptTest-Regular.otf"
    builder.save(str(path))
    return str(path)
