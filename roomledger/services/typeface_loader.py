"""Fetching and validation of outline-font binaries for receipt rendering.

Fonts are accepted only when their leading bytes carry a known signature:

- 00 01 00 00  TrueType outlines
- "OTTO"       OpenType with CFF outlines
- "ttcf"       TrueType/OpenType collection

Anything else (an HTML error page served in place of the font, WOFF/WOFF2,
a renamed file) is rejected before it reaches the PDF builder, with the
actual leading bytes in the error message.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from roomledger.services.config import get_settings
from roomledger.services.errors import FetchError, FormatError

logger = logging.getLogger(__name__)


class FontFormat(str, Enum):
    """Supported outline-font container formats."""

    TRUETYPE = "truetype"
    """Single font with TrueType outlines"""

    OPENTYPE = "opentype"
    """Single font with CFF (PostScript) outlines"""

    COLLECTION = "collection"
    """Font collection (.ttc)"""


FONT_SIGNATURES: dict[bytes, FontFormat] = {
    b"\x00\x01\x00\x00": FontFormat.TRUETYPE,
    b"OTTO": FontFormat.OPENTYPE,
    b"ttcf": FontFormat.COLLECTION,
}

# Lower-cased openings of textual markup documents
MARKUP_PREFIXES = (b"<!do", b"<htm", b"<?xm", b"<hea", b"<bod")


@dataclass(frozen=True)
class ValidatedFont:
    """Font bytes that passed signature validation.

    Attributes:
        data: Raw font binary
        format: Detected container format
        source: Asset path or URL the bytes came from
    """

    data: bytes
    format: FontFormat
    source: str

    def __repr__(self) -> str:
        return f"<ValidatedFont(format={self.format.value}, size={len(self.data)}, source={self.source})>"


def describe_signature(data: bytes) -> str:
    """Hex dump of the first four bytes (e.g., '3c 21 44 4f')."""
    return " ".join(f"{b:02x}" for b in data[:4])


def sniff_font_format(data: bytes) -> FontFormat | None:
    """Detect the container format from the leading bytes.

    Returns:
        FontFormat or None when the bytes match no supported signature
    """
    return FONT_SIGNATURES.get(bytes(data[:4]))


def validate_font_bytes(
    data: bytes,
    asset_path: str,
    content_type: str | None = None,
) -> ValidatedFont:
    """Validate a retrieved buffer as an outline font.

    A declared text/html content type rejects immediately; otherwise the
    byte signature decides.

    Args:
        data: Retrieved bytes
        asset_path: Source identifier (for diagnostics)
        content_type: Content-Type reported by the transport, if any

    Returns:
        ValidatedFont

    Raises:
        FormatError: If the buffer is not a supported font binary
    """
    signature = describe_signature(data)
    looks_like_markup = bytes(data[:4]).lower() in MARKUP_PREFIXES

    if content_type and "text/html" in content_type.lower():
        raise FormatError(
            f"Font path {asset_path} returned HTML (content-type {content_type}, "
            f"signature bytes: {signature or 'none'}). "
            f"The asset path probably serves an error page instead of the font.",
            asset_path,
            signature,
        )

    if len(data) < 4:
        raise FormatError(
            f"Font at {asset_path} is too short to be a font ({len(data)} bytes, "
            f"signature bytes: {signature or 'none'})",
            asset_path,
            signature,
        )

    font_format = sniff_font_format(data)
    if font_format is None:
        hint = (
            "The asset path probably serves an HTML error page instead of the font."
            if looks_like_markup
            else "Expected TTF/OTF/TTC; WOFF/WOFF2 or renamed files are not supported."
        )
        raise FormatError(
            f"Font at {asset_path} is not a TTF/OTF/TTC binary. "
            f"Signature bytes: {signature}. {hint}",
            asset_path,
            signature,
        )

    return ValidatedFont(data=bytes(data), format=font_format, source=asset_path)


class TypefaceLoader:
    """Loads fonts from local paths or http(s) URLs and validates them.

    The loader keeps no cache: each load() call retrieves the asset again.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        """Initialize loader.

        Args:
            client: Shared HTTP client (owned by the caller); a short-lived
                client is created per fetch when None
            timeout: HTTP timeout in seconds (default: FONT_FETCH_TIMEOUT setting)
        """
        self.client = client
        self.timeout = timeout if timeout is not None else get_settings().font_fetch_timeout

    async def load(self, asset_path: str) -> ValidatedFont:
        """Fetch and validate a font.

        Args:
            asset_path: Local file path, file:// URL, or http(s) URL

        Returns:
            ValidatedFont

        Raises:
            FetchError: If the asset cannot be retrieved
            FormatError: If the bytes are not a supported font binary
        """
        parsed = urlparse(asset_path)
        if parsed.scheme in ("http", "https"):
            data, content_type = await self._fetch_http(asset_path)
        else:
            path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(asset_path)
            data, content_type = await self._read_file(path, asset_path), None

        font = validate_font_bytes(data, asset_path, content_type)
        logger.debug("Loaded %s font from %s (%d bytes)", font.format.value, asset_path, len(data))
        return font

    async def _fetch_http(self, url: str) -> tuple[bytes, str | None]:
        try:
            if self.client is not None:
                response = await self.client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(f"Could not fetch font at {url}: {e}", url) from e

        if not response.is_success:
            raise FetchError(
                f"Could not fetch font ({response.status_code}) at {url}. "
                f"Check the font asset location.",
                url,
                status_code=response.status_code,
            )

        return response.content, response.headers.get("content-type")

    async def _read_file(self, path: Path, asset_path: str) -> bytes:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise FetchError(f"Font file not found: {asset_path}", asset_path) from e
        except OSError as e:
            raise FetchError(f"Cannot read font file {asset_path}: {e}", asset_path) from e


__all__ = [
    "FontFormat",
    "FONT_SIGNATURES",
    "ValidatedFont",
    "TypefaceLoader",
    "describe_signature",
    "sniff_font_format",
    "validate_font_bytes",
]
