"""
Tolerant decoding of loosely-typed fields from the rule store.

Rule rows arrive from a schemaless store: weekday lists may be real lists,
JSON text or stringified Postgres arrays, clock values may be numbers,
numeric strings or ``HH:MM`` text, and dates may carry a locale-formatted
time-of-day. The functions here never raise on bad input; they return an
empty or ``None`` result and let the caller decide whether a rule applies.
"""

import json
import logging
import math
import re
from datetime import date, datetime
from typing import Any, FrozenSet, Iterable, List, Optional

import pendulum

from .time_arithmetic import WEEKDAY_NAMES

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

_WEEKDAY_LOOKUP = {name.lower(): name for name in WEEKDAY_NAMES}

_TOKEN_SPLIT = re.compile(r"[,;|]")
_TOKEN_STRIP = re.compile(r"[{}\[\]\"'\\]")
_CLOCK = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?$")
_LOCALE_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?:$|[,\sT])")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:$|[T\s])")
_TZ_SUFFIX = re.compile(r"(?:Z|[+-]\d{2}(?::?\d{2})?)$", re.IGNORECASE)

_TRUE_WORDS = {"true", "t", "yes", "y", "1", "on"}
_FALSE_WORDS = {"false", "f", "no", "n", "0", "off", ""}


def normalize_weekday(raw: Any) -> Optional[str]:
    """
    Return the canonical capitalized weekday name for ``raw``.

    ``" saturday "`` -> ``"Saturday"``; anything that is not a weekday name
    yields ``None``.
    """
    if raw is None:
        return None
    token = _TOKEN_STRIP.sub("", str(raw)).strip().lower()
    return _WEEKDAY_LOOKUP.get(token)


def parse_weekday_set(raw: Any) -> FrozenSet[str]:
    """
    Decode a weekend-days style field into a set of weekday names.

    Accepts a native list, a JSON array/object/string, a stringified Postgres
    array such as ``{"Saturday","Sunday"}`` (escaped or doubly quoted), or
    separator-delimited text. Unknown tokens are dropped; unreadable input
    gives an empty set.
    """
    if raw is None:
        return frozenset()

    if isinstance(raw, (list, tuple, set, frozenset)):
        return _weekdays_from_tokens(raw)

    if isinstance(raw, dict):
        return _weekdays_from_tokens(raw.keys())

    if not isinstance(raw, str):
        logger.warning("Ignoring weekday list of unexpected type %s: %r", type(raw).__name__, raw)
        return frozenset()

    text = raw.strip()
    if not text:
        return frozenset()

    try:
        decoded = json.loads(text)
    except ValueError:
        decoded = None
    else:
        if isinstance(decoded, (list, dict)):
            return parse_weekday_set(decoded)
        if isinstance(decoded, str) and decoded.strip() != text:
            # Doubly encoded, e.g. "\"{\\\"Sunday\\\"}\""
            return parse_weekday_set(decoded)

    tokens = [token for token in _TOKEN_SPLIT.split(_TOKEN_STRIP.sub("", text)) if token.strip()]
    days = _weekdays_from_tokens(tokens)
    if tokens and not days:
        logger.warning("Could not read any weekday from %r", raw)
    return days


def _weekdays_from_tokens(tokens: Iterable[Any]) -> FrozenSet[str]:
    days = set()
    for token in tokens:
        if isinstance(token, (list, tuple)):
            days.update(_weekdays_from_tokens(token))
            continue
        name = normalize_weekday(token)
        if name is None:
            logger.debug("Dropping non-weekday token %r", token)
            continue
        days.add(name)
    return frozenset(days)


def parse_minute_field(raw: Any) -> Optional[int]:
    """
    Decode a minutes-since-midnight field.

    Accepts integers, integral floats, numeric strings and ``HH:MM`` /
    ``HH:MM:SS`` clock strings. Returns ``None`` when the field is absent or
    unreadable so callers can tell "no rule" apart from a rule at minute 0.
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        if not math.isfinite(raw) or int(raw) != raw:
            return None
        return _minute_in_range(int(raw), raw)

    if not isinstance(raw, str):
        return None

    text = raw.strip()
    if not text:
        return None

    clock = _CLOCK.match(text)
    if clock:
        hours, minutes = int(clock.group(1)), int(clock.group(2))
        if minutes >= 60:
            return None
        return _minute_in_range(hours * 60 + minutes, raw)

    try:
        value = float(text)
    except ValueError:
        logger.debug("Unreadable minute value %r", raw)
        return None
    if not math.isfinite(value) or int(value) != value:
        return None
    return _minute_in_range(int(value), raw)


def _minute_in_range(value: int, raw: Any) -> Optional[int]:
    if 0 <= value <= MINUTES_PER_DAY:
        return value
    logger.debug("Minute value %r outside 0-%d", raw, MINUTES_PER_DAY)
    return None


def parse_bool_field(raw: Any, default: bool = False) -> bool:
    """Decode a boolean stored as bool, number or text."""
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return default
    if isinstance(raw, (int, float)):
        return raw != 0
    text = str(raw).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    return default


def parse_flexible_date(raw: Any, timezone: str) -> Optional[pendulum.Date]:
    """
    Decode a calendar date from an ISO or locale-formatted value.

    Values without timezone information (``"2025-09-17"``,
    ``"9/17/2025, 12:00:00 AM"``, ``"2025-09-17T00:00:00"``) are read as the
    literal calendar date they name. Values carrying an offset are instants
    and are dated in ``timezone``.
    """
    if raw is None:
        return None

    if isinstance(raw, datetime):
        if raw.tzinfo is None:
            return pendulum.date(raw.year, raw.month, raw.day)
        return pendulum.instance(raw).in_timezone(timezone).date()

    if isinstance(raw, date):
        return pendulum.date(raw.year, raw.month, raw.day)

    if not isinstance(raw, str):
        return None

    text = raw.strip()
    if not text:
        return None

    try:
        locale_date = _LOCALE_DATE.match(text)
        if locale_date:
            month, day, year = (int(part) for part in locale_date.groups())
            return pendulum.date(year, month, day)

        iso_date = _ISO_DATE.match(text)
        if iso_date:
            if len(text) > 10 and _TZ_SUFFIX.search(text):
                parsed = pendulum.parse(text)
                return parsed.in_timezone(timezone).date()
            year, month, day = (int(part) for part in iso_date.groups())
            return pendulum.date(year, month, day)
    except ValueError as exc:
        logger.debug("Unreadable date %r: %s", raw, exc)
        return None

    return None


def parse_weekday_index(raw: Any) -> Optional[str]:
    """
    Map a ``day_of_week`` value to a weekday name.

    Numbers follow the store's convention of 0 = Sunday through 6 = Saturday;
    weekday names are accepted as well.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            return None
        index = int(raw)
        if index == raw and 0 <= index < len(WEEKDAY_NAMES):
            return WEEKDAY_NAMES[index]
        return None
    text = str(raw).strip()
    if text.isdigit():
        return parse_weekday_index(int(text))
    return normalize_weekday(text)


def staff_id_variants(staff_id: str) -> List[str]:
    """
    Alternate spellings of a staff identifier with ``1``/``I`` and ``0``/``O``
    swapped, in lookup order, excluding ``staff_id`` itself.
    """
    candidates = [
        staff_id.replace("1", "I").replace("0", "O"),
        staff_id.replace("I", "1").replace("O", "0"),
        staff_id.replace("1", "I"),
        staff_id.replace("I", "1"),
    ]
    variants: List[str] = []
    for candidate in candidates:
        if candidate != staff_id and candidate not in variants:
            variants.append(candidate)
    return variants
