"""
Parsing helpers for raw values typed into chat forms.

Everything here works on plain strings so the same rules apply whether a
value came from a modal, a slash command or the admin CLI.
"""

from __future__ import annotations

import math
import re

from ..errors import InvalidChannel, InvalidWeight

_CHANNEL_MENTION_RE = re.compile(r"<#(\d{15,25})>")
_CHANNEL_ID_RE = re.compile(r"\b(\d{15,25})\b")


def parse_weight(value: str | int | float | None) -> float:
    """Parse a submitted weight in pounds.

    Accepts numbers or numeric strings. Rejects blanks, non-numeric text,
    NaN/infinity, and anything not strictly positive.
    """
    if value is None or isinstance(value, bool):
        raise InvalidWeight()
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidWeight()
    try:
        weight = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidWeight() from exc
    if not math.isfinite(weight) or weight <= 0:
        raise InvalidWeight()
    return weight


def parse_channel_id(text: str | None) -> str:
    """Extract a channel id from a ``<#123>`` mention or a bare numeric id."""
    if not text:
        raise InvalidChannel()
    mention = _CHANNEL_MENTION_RE.search(text)
    if mention:
        return mention.group(1)
    raw = _CHANNEL_ID_RE.search(text)
    if raw:
        return raw.group(1)
    raise InvalidChannel()


def is_image_content_type(content_type: str | None) -> bool:
    return (content_type or "").lower().startswith("image/")


def clean_optional_text(value: str | None) -> str | None:
    """Strip free text; empty strings become None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
