"""Identifier helpers shared by tabs and diagram templates."""

from __future__ import annotations

import re
import uuid
from typing import Callable

__all__ = ["IdGenerator", "generate_id", "regenerate_ids"]

IdGenerator = Callable[[], str]

_ID_LENGTH = 12
# ``{{ ID }}`` yields a fresh id per occurrence, ``{{ ID:key }}`` one id per key.
_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*ID(?:\s*:\s*([A-Za-z0-9_.-]+))?\s*\}\}")


def generate_id() -> str:
    """Return a short, random, XML-safe identifier."""

    return uuid.uuid4().hex[:_ID_LENGTH]


def regenerate_ids(text: str, id_generator: IdGenerator = generate_id) -> str:
    """Replace every id placeholder in ``text`` with freshly generated values.

    Keyed placeholders stay consistent within a single call so cross references
    (``bpmnElement="Process_{{ ID:process }}"``) keep pointing at the element
    that declares the same key.
    """

    keyed: dict[str, str] = {}

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key is None:
            return id_generator()
        if key not in keyed:
            keyed[key] = id_generator()
        return keyed[key]

    return _PLACEHOLDER_PATTERN.sub(_replace, text)
