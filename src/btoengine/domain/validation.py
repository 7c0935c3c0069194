"""
Field-level validation shared by the domain records and the storage codecs.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Dict, Optional

from btoengine.core.errors import ValidationError

NRIC_PATTERN = re.compile(r"^[ST][0-9]{7}[A-Z]$")
PROJECT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9 \-]{3,100}$")

# The snapshot layout is comma separated without quoting.
_FORBIDDEN_TEXT = re.compile(r"[,\r\n]")


def is_valid_nric(nric: Optional[str]) -> bool:
    return nric is not None and len(nric) == 9 and bool(NRIC_PATTERN.match(nric))


def validate_nric(nric: Optional[str], *, field: str = "nric") -> str:
    if not is_valid_nric(nric):
        raise ValidationError(
            message=f"Malformed NRIC: {nric!r}",
            context={"field": field, "value": nric},
        )
    return str(nric)


def require_text(value: Optional[str], *, field: str, entity_id: Optional[str] = None) -> str:
    """Return ``value`` stripped, rejecting blank text and storage delimiters."""
    context: Dict[str, Any] = {"field": field}
    if entity_id:
        context["id"] = entity_id
    text = (value or "").strip()
    if not text:
        raise ValidationError(message=f"{field} must not be blank", context=context)
    if _FORBIDDEN_TEXT.search(text):
        raise ValidationError(message=f"{field} must not contain commas or line breaks", context=context)
    return text


def parse_date(raw: Any, *, field: str) -> date:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw).strip())
    except ValueError:
        raise ValidationError(
            message=f"{field} is not an ISO date (YYYY-MM-DD): {raw!r}",
            context={"field": field, "value": raw},
        ) from None


def parse_timestamp(raw: Any, *, field: str) -> datetime:
    """Parse a naive local timestamp; values carrying a UTC offset are rejected."""
    if isinstance(raw, datetime):
        value = raw
    else:
        try:
            value = datetime.fromisoformat(str(raw).strip())
        except ValueError:
            raise ValidationError(
                message=f"{field} is not an ISO timestamp: {raw!r}",
                context={"field": field, "value": raw},
            ) from None
    if value.tzinfo is not None:
        raise ValidationError(
            message=f"{field} must be a local timestamp without a UTC offset: {raw!r}",
            context={"field": field, "value": str(raw)},
        )
    return value


def validate_window(opening: date, closing: date, *, entity_id: Optional[str] = None) -> None:
    if opening > closing:
        context: Dict[str, Any] = {"field": "closing_date", "opening": opening.isoformat(), "closing": closing.isoformat()}
        if entity_id:
            context["id"] = entity_id
        raise ValidationError(message="Closing date precedes opening date", context=context)
