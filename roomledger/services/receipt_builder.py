"""Single-page A5 receipt rendering.

The layout is computed first as a list of text draw operations from a
width-measuring function; rendering replays those operations on a
reportlab canvas with the two embedded receipt fonts (regular and bold).

Layout rules:
- One vertical cursor starts TOP_OFFSET below the top edge; centered lines
  advance it by size + LINE_GAP, table rows by fixed steps, plus section gaps
- Labels sit at fixed columns; amounts are right-aligned at the right margin
  by subtracting their measured width
- Currency is formatted with locale thousands separators before measuring;
  meter readings and consumption are printed as plain integers
"""

import asyncio
import hashlib
import io
import logging
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from fontTools import ttLib
from fontTools.pens.cu2quPen import Cu2QuPen
from fontTools.pens.ttGlyphPen import TTGlyphPen
from reportlab.lib.pagesizes import A5
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen.canvas import Canvas

from roomledger.services.bill_calculator import BillBreakdown, compute_bill
from roomledger.services.config import get_settings
from roomledger.services.errors import FormatError
from roomledger.services.locale_service import format_amount, resolve_locale
from roomledger.services.typeface_loader import FontFormat, TypefaceLoader, ValidatedFont

logger = logging.getLogger(__name__)

# ===== Layout constants (points) =====
PAGE_WIDTH, PAGE_HEIGHT = A5
MARGIN = 32
TOP_OFFSET = 52
LINE_GAP = 6

# Two-column reading summary
LEFT_COLUMN_X = MARGIN
RIGHT_COLUMN_X = PAGE_WIDTH / 2 + 10
VALUE_COLUMN_OFFSET = 100

# Charge list
ITEM_INDENT = 10
AMOUNT_RIGHT_X = PAGE_WIDTH - MARGIN

# Type sizes
TITLE_SIZE = 18
ROOM_SIZE = 12
SECTION_SIZE = 11
TEXT_SIZE = 10
TOTAL_SIZE = 11
PAYMENT_TITLE_SIZE = 12
FOOTER_SIZE = 9

# Fixed row steps (centered lines advance size + LINE_GAP instead)
SECTION_STEP = 18
ROW_STEP = 16
FOOTER_STEP = 14

# Extra vertical gaps between sections
GAP_AFTER_MONTH = 4
GAP_AFTER_HEADER = 14
GAP_AFTER_READINGS = 10
GAP_BEFORE_TOTAL = 6
GAP_BEFORE_PAYMENT = 24
GAP_AFTER_PAYMENT_TITLE = 16
GAP_PAYMENT_LINES = 14
GAP_BEFORE_FOOTER = 20

TITLE = "PAYMENT RECEIPT"


class FontRole(str, Enum):
    """Type weights used on the receipt."""

    REGULAR = "regular"
    BOLD = "bold"


# text, role, size -> rendered width in points
WidthMeasure = Callable[[str, FontRole, float], float]


@dataclass(frozen=True)
class ReceiptInput:
    """Everything printed on one receipt.

    Numeric fields may hold raw form values; they are coerced the same way
    compute_bill coerces them.
    """

    room_text: str
    month_text: str
    elec_old: Any = 0
    elec_new: Any = 0
    water_old: Any = 0
    water_new: Any = 0
    elec_price: Any = 0
    water_price: Any = 0
    rent: Any = 0
    trash_security: Any = 0

    def bill(self) -> BillBreakdown:
        return compute_bill(
            {
                "elec_old": self.elec_old,
                "elec_new": self.elec_new,
                "water_old": self.water_old,
                "water_new": self.water_new,
            },
            {"elec_price": self.elec_price, "water_price": self.water_price},
            {"rent": self.rent, "trash_security": self.trash_security},
        )


@dataclass(frozen=True)
class PaymentDetails:
    """Bank transfer instructions printed in the payment block."""

    account_number: str
    account_name: str
    bank_name: str

    @classmethod
    def from_settings(cls) -> "PaymentDetails":
        settings = get_settings()
        return cls(
            account_number=settings.bank_account_number,
            account_name=settings.bank_account_name,
            bank_name=settings.bank_name,
        )


@dataclass(frozen=True)
class TextOp:
    """One string drawn at a baseline position."""

    text: str
    x: float
    y: float
    role: FontRole
    size: float


class ReceiptLayout:
    """Computes receipt draw operations; performs no rendering itself."""

    def __init__(
        self,
        measure: WidthMeasure,
        payment: PaymentDetails,
        locale: str | None = None,
    ) -> None:
        self.measure = measure
        self.payment = payment
        self.locale = resolve_locale(locale)
        self._ops: list[TextOp] = []
        self._y = 0.0

    def money(self, amount: int) -> str:
        return format_amount(amount, locale=self.locale)

    def compose(self, receipt: ReceiptInput) -> list[TextOp]:
        """Lay out the receipt.

        Args:
            receipt: Receipt content

        Returns:
            Draw operations in drawing order
        """
        bill = receipt.bill()
        self._ops = []
        self._y = PAGE_HEIGHT - TOP_OFFSET

        # Header
        self._center(TITLE, FontRole.BOLD, TITLE_SIZE)
        self._center(receipt.month_text or "", FontRole.REGULAR, TEXT_SIZE)
        self._y -= GAP_AFTER_MONTH
        self._center(receipt.room_text or "", FontRole.BOLD, ROOM_SIZE)
        self._y -= GAP_AFTER_HEADER

        # Readings, two columns
        self._draw("ELECTRICITY:", LEFT_COLUMN_X, FontRole.BOLD, SECTION_SIZE)
        self._draw("WATER:", RIGHT_COLUMN_X, FontRole.BOLD, SECTION_SIZE)
        self._y -= SECTION_STEP

        rows = (
            ("New reading", bill.elec_new, bill.water_new),
            ("Old reading", bill.elec_old, bill.water_old),
            ("Consumption", bill.elec_total, bill.water_total),
        )
        for label, elec_value, water_value in rows:
            self._label_value(LEFT_COLUMN_X, label, elec_value)
            self._label_value(RIGHT_COLUMN_X, label, water_value)
            self._y -= ROW_STEP
        self._y -= GAP_AFTER_READINGS

        # Charges
        self._draw("CHARGES", MARGIN, FontRole.BOLD, SECTION_SIZE)
        self._y -= SECTION_STEP
        self._item("Room rent", bill.rent)
        self._item(
            f"Electricity  ({bill.elec_total} × {self.money(bill.elec_price)})", bill.elec_cost
        )
        self._item(
            f"Water  ({bill.water_total} × {self.money(bill.water_price)})", bill.water_cost
        )
        self._item("Trash + security", bill.trash_security)
        self._y -= GAP_BEFORE_TOTAL
        self._item("Total", bill.total, bold=True)

        # Payment instructions
        self._y -= GAP_BEFORE_PAYMENT
        self._center("BANK TRANSFER DETAILS", FontRole.BOLD, PAYMENT_TITLE_SIZE)
        self._y -= GAP_AFTER_PAYMENT_TITLE
        self._center(f"Account number: {self.payment.account_number}", FontRole.BOLD, TEXT_SIZE)
        self._y -= GAP_PAYMENT_LINES
        self._center(f"Account name: {self.payment.account_name}", FontRole.BOLD, TEXT_SIZE)
        self._y -= GAP_PAYMENT_LINES
        self._center(f"Bank: {self.payment.bank_name}", FontRole.BOLD, TEXT_SIZE)

        # Footer
        self._y -= GAP_BEFORE_FOOTER
        self._draw(
            f"Electricity price: {self.money(bill.elec_price)} / kWh",
            MARGIN,
            FontRole.REGULAR,
            FOOTER_SIZE,
        )
        self._y -= FOOTER_STEP
        self._draw(
            f"Water price: {self.money(bill.water_price)} / unit",
            MARGIN,
            FontRole.REGULAR,
            FOOTER_SIZE,
        )

        if self._y < MARGIN:
            logger.warning("Receipt layout ran past the bottom margin (y=%.1f)", self._y)

        return list(self._ops)

    def _advance(self, size: float) -> None:
        self._y -= size + LINE_GAP

    def _emit(self, text: str, x: float, role: FontRole, size: float) -> None:
        self._ops.append(TextOp(text=text, x=x, y=self._y, role=role, size=size))

    def _draw(self, text: str, x: float, role: FontRole, size: float) -> None:
        width = self.measure(text, role, size)
        if x + width > PAGE_WIDTH - MARGIN:
            logger.warning(
                "Text %r (%.1fpt at x=%.1f) crosses the right margin", text, width, x
            )
        self._emit(text, x, role, size)

    def _draw_right(self, text: str, right_x: float, role: FontRole, size: float) -> float:
        width = self.measure(text, role, size)
        x = right_x - width
        if x < MARGIN:
            logger.warning(
                "Right-aligned text %r (%.1fpt) crosses the left margin, clamping", text, width
            )
            x = MARGIN
        self._emit(text, x, role, size)
        return x

    def _center(self, text: str, role: FontRole, size: float) -> None:
        width = self.measure(text, role, size)
        x = (PAGE_WIDTH - width) / 2
        if x < MARGIN:
            logger.warning("Centered text %r (%.1fpt) is wider than the page body", text, width)
            x = MARGIN
        self._emit(text, x, role, size)
        self._advance(size)

    def _label_value(self, column_x: float, label: str, value: int) -> None:
        self._draw(label, column_x, FontRole.REGULAR, TEXT_SIZE)
        self._draw(f":  {value}", column_x + VALUE_COLUMN_OFFSET, FontRole.REGULAR, TEXT_SIZE)

    def _item(self, label: str, amount: int, bold: bool = False) -> None:
        role = FontRole.BOLD if bold else FontRole.REGULAR
        size = TOTAL_SIZE if bold else TEXT_SIZE
        label_text = f"› {label}"
        label_x = MARGIN + ITEM_INDENT
        label_end = label_x + self.measure(label_text, role, size)

        self._emit(label_text, label_x, role, size)
        amount_x = self._draw_right(self.money(amount), AMOUNT_RIGHT_X, role, size)
        if label_end > amount_x:
            logger.warning("Charge label %r overlaps its amount", label)
        self._y -= ROW_STEP


CU2QU_MAX_ERR = 1.0


def convert_cff_to_truetype(font: ValidatedFont) -> bytes:
    """Rewrite a CFF-flavoured OpenType font with quadratic glyf outlines.

    reportlab only embeds TrueType outlines, so cubic CFF charstrings are
    approximated with quadratic curves (within CU2QU_MAX_ERR font units)
    and the glyf, loca, maxp and post tables are rebuilt.

    Args:
        font: Validated font tagged FontFormat.OPENTYPE

    Returns:
        TrueType-flavoured font bytes

    Raises:
        FormatError: If the font cannot be parsed or has no CFF table
    """
    try:
        otf = ttLib.TTFont(io.BytesIO(font.data))
        if "CFF " not in otf:
            raise FormatError(
                f"Font from {font.source} cannot be embedded: no CFF outline table",
                font.source,
            )

        glyph_order = otf.getGlyphOrder()
        glyph_set = otf.getGlyphSet()

        otf["loca"] = ttLib.newTable("loca")
        otf["glyf"] = glyf = ttLib.newTable("glyf")
        glyf.glyphOrder = glyph_order
        glyf.glyphs = {}
        for glyph_name in glyph_order:
            pen = TTGlyphPen(glyph_set)
            glyph_set[glyph_name].draw(Cu2QuPen(pen, CU2QU_MAX_ERR, reverse_direction=True))
            glyf.glyphs[glyph_name] = pen.glyph()

        del otf["CFF "]
        if "VORG" in otf:
            del otf["VORG"]
        glyf.compile(otf)

        hmtx = otf["hmtx"]
        for glyph_name, glyph in glyf.glyphs.items():
            if hasattr(glyph, "xMin"):
                hmtx[glyph_name] = (hmtx[glyph_name][0], glyph.xMin)

        otf["maxp"] = maxp = ttLib.newTable("maxp")
        maxp.tableVersion = 0x00010000
        maxp.maxZones = 1
        maxp.maxTwilightPoints = 0
        maxp.maxStorage = 0
        maxp.maxFunctionDefs = 0
        maxp.maxInstructionDefs = 0
        maxp.maxStackElements = 0
        maxp.maxSizeOfInstructions = 0
        maxp.maxComponentElements = 0
        maxp.compile(otf)

        post = otf["post"]
        post.formatType = 2.0
        post.extraNames = []
        post.mapping = {}
        post.glyphOrder = glyph_order
        try:
            post.compile(otf)
        except OverflowError:
            # too many glyph names for a format 2 table
            post.formatType = 3.0

        otf.sfntVersion = "\x00\x01\x00\x00"
        buffer = io.BytesIO()
        otf.save(buffer)
    except (ttLib.TTLibError, struct.error, KeyError, ValueError) as e:
        raise FormatError(
            f"Font from {font.source} cannot be embedded: unreadable CFF font ({e})",
            font.source,
        ) from e

    logger.debug(
        "Converted CFF outlines of %s to TrueType (%d glyphs)", font.source, len(glyph_order)
    )
    return buffer.getvalue()


def _register_font(font: ValidatedFont, prefix: str) -> str:
    """Register a validated font with reportlab and return its font name.

    Names are derived from the font bytes, so repeated exports of the same
    font reuse one registration and different fonts never collide.

    Raises:
        FormatError: If reportlab cannot embed the font
    """
    digest = hashlib.sha1(font.data).hexdigest()[:12]
    name = f"{prefix}-{digest}"
    if name in pdfmetrics.getRegisteredFontNames():
        return name

    data = font.data
    if font.format is FontFormat.OPENTYPE:
        data = convert_cff_to_truetype(font)

    try:
        ttfont = TTFont(name, io.BytesIO(data), subfontIndex=0)
    except TTFError as e:
        raise FormatError(
            f"Font from {font.source} cannot be embedded: {e}",
            font.source,
        ) from e

    pdfmetrics.registerFont(ttfont)
    return name


class ReceiptDocumentBuilder:
    """Builds receipt PDFs with fonts fetched fresh for every build."""

    def __init__(
        self,
        loader: TypefaceLoader | None = None,
        regular_font_path: str | None = None,
        bold_font_path: str | None = None,
        payment: PaymentDetails | None = None,
        locale: str | None = None,
    ) -> None:
        """Initialize builder.

        Args:
            loader: Font loader (default: TypefaceLoader with settings timeout)
            regular_font_path: Regular font asset (default: FONT_REGULAR_PATH setting)
            bold_font_path: Bold font asset (default: FONT_BOLD_PATH setting)
            payment: Transfer details (default: BANK_* settings)
            locale: Number formatting locale (default: LOCALE setting)
        """
        settings = get_settings()
        self.loader = loader or TypefaceLoader()
        self.regular_font_path = regular_font_path or settings.font_regular_path
        self.bold_font_path = bold_font_path or settings.font_bold_path
        self.payment = payment or PaymentDetails.from_settings()
        self.locale = locale

    async def build_receipt(self, receipt: ReceiptInput) -> bytes:
        """Build a complete single-page PDF receipt.

        Both fonts are fetched concurrently; nothing is drawn until both
        are validated.

        Args:
            receipt: Receipt content

        Returns:
            PDF document bytes

        Raises:
            FetchError: If either font cannot be retrieved
            FormatError: If either font is not an embeddable outline font
        """
        regular, bold = await asyncio.gather(
            self.loader.load(self.regular_font_path),
            self.loader.load(self.bold_font_path),
        )
        return self.render(receipt, regular, bold)

    def render(self, receipt: ReceiptInput, regular: ValidatedFont, bold: ValidatedFont) -> bytes:
        """Render the receipt with already validated fonts."""
        font_names = {
            FontRole.REGULAR: _register_font(regular, "ReceiptRegular"),
            FontRole.BOLD: _register_font(bold, "ReceiptBold"),
        }

        def measure(text: str, role: FontRole, size: float) -> float:
            return pdfmetrics.stringWidth(text, font_names[role], size)

        layout = ReceiptLayout(measure, self.payment, locale=self.locale)
        ops = layout.compose(receipt)

        buffer = io.BytesIO()
        canvas = Canvas(buffer, pagesize=A5, invariant=1)
        canvas.setTitle(f"{TITLE} - {receipt.room_text} - {receipt.month_text}")
        canvas.setSubject(receipt.month_text)

        for op in ops:
            canvas.setFont(font_names[op.role], op.size)
            canvas.drawString(op.x, op.y, op.text)

        canvas.showPage()
        canvas.save()

        content = buffer.getvalue()
        logger.info(
            "Built receipt for %s, %s (%d bytes, %d text lines)",
            receipt.room_text,
            receipt.month_text,
            len(content),
            len(ops),
        )
        return content


__all__ = [
    "FontRole",
    "PaymentDetails",
    "ReceiptDocumentBuilder",
    "ReceiptInput",
    "ReceiptLayout",
    "TextOp",
]
