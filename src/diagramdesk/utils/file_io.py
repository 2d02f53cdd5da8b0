"""Reading diagram files from disk.

Diagram files are XML, so the byte-order mark wins, then the encoding named in
the XML declaration, then UTF-8 with a Latin-1 fallback for legacy exports.
"""

from __future__ import annotations

import codecs
import logging
import re
from pathlib import Path

__all__ = ["read_text", "decode_text", "sniff_encoding"]

LOGGER = logging.getLogger(__name__)

# utf-32 marks first: BOM_UTF32_LE starts with BOM_UTF16_LE
_BYTE_ORDER_MARKS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)
_HEADER_BYTES = 256
_XML_DECLARATION = re.compile(rb"""^\s*<\?xml[^>]*?\sencoding\s*=\s*["']([A-Za-z][\w.:-]*)["']""")


def read_text(
    path: Path | str,
    *,
    encoding: str | None = None,
    errors: str = "strict",
    normalize_newlines: bool = True,
) -> str:
    """Read a diagram file, detecting its encoding unless one is given."""

    return decode_text(
        Path(path).read_bytes(),
        encoding=encoding,
        errors=errors,
        normalize_newlines=normalize_newlines,
    )


def decode_text(
    raw: bytes,
    *,
    encoding: str | None = None,
    errors: str = "strict",
    normalize_newlines: bool = True,
) -> str:
    text = raw.decode(encoding or sniff_encoding(raw), errors=errors)
    if text.startswith("\ufeff"):
        text = text[1:]
    if normalize_newlines and "\r" in text:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text


def sniff_encoding(raw: bytes) -> str:
    """Return the codec name ``raw`` should be decoded with."""

    for mark, encoding in _BYTE_ORDER_MARKS:
        if raw.startswith(mark):
            return encoding

    declared = _declared_encoding(raw[:_HEADER_BYTES])
    if declared is not None:
        return declared

    try:
        raw.decode("utf-8")
    except UnicodeDecodeError:
        return "latin-1"
    return "utf-8"


def _declared_encoding(header: bytes) -> str | None:
    match = _XML_DECLARATION.match(header)
    if match is None:
        return None
    name = match.group(1).decode("ascii")
    try:
        return codecs.lookup(name).name
    except LookupError:
        LOGGER.debug("Ignoring unknown declared encoding %r", name)
        return None
