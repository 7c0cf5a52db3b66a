from __future__ import annotations

import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from propbridge.core.errors import ParseError, RangeError

# Unit sizes in microseconds.
_UNITS = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),
    "μs": Decimal(1),
    "ms": Decimal(1000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}

_TERM_RE = re.compile(r"([0-9]*(?:\.[0-9]*)?)([^0-9.]+)")


def parse_duration(text: str) -> timedelta:
    """Parse a compound duration such as "1h30m", "-1.5h" or "300ms".

    Grammar: an optional sign, then one or more <decimal><unit> terms, or
    the bare string "0". Units: ns, us (µs), ms, s, m, h.
    """
    s = text
    negative = False
    if s[:1] in ("-", "+"):
        negative = s[0] == "-"
        s = s[1:]
    if s == "0":
        return timedelta(0)
    if not s:
        raise ParseError(f"invalid duration {text!r}", raw=text)

    total = Decimal(0)
    pos = 0
    while pos < len(s):
        m = _TERM_RE.match(s, pos)
        if m is None:
            raise ParseError(f"invalid duration {text!r}", raw=text)
        number, unit = m.group(1), m.group(2)
        if not number.strip(".") or unit not in _UNITS:
            raise ParseError(f"invalid duration {text!r}", raw=text)
        try:
            total += Decimal(number) * _UNITS[unit]
        except InvalidOperation as exc:
            raise ParseError(f"invalid duration {text!r}", raw=text) from exc
        pos = m.end()

    if negative:
        total = -total
    try:
        return timedelta(microseconds=int(total))
    except OverflowError as exc:
        raise RangeError(f"duration {text!r} out of range", raw=text) from exc


def _fraction(amount: int, unit: int) -> str:
    whole, frac = divmod(amount, unit)
    if not frac:
        return str(whole)
    digits = str(frac).rjust(len(str(unit)) - 1, "0").rstrip("0")
    return f"{whole}.{digits}"


def format_duration(value: timedelta) -> str:
    """Inverse of parse_duration: 5400s -> "1h30m0s", 0.0015s -> "1.5ms"."""
    us = (value.days * 86400 + value.seconds) * 1_000_000 + value.microseconds
    if us == 0:
        return "0s"
    sign = "-" if us < 0 else ""
    us = abs(us)

    if us < 1000:
        return f"{sign}{us}µs"
    if us < 1_000_000:
        return f"{sign}{_fraction(us, 1000)}ms"

    hours, rem = divmod(us, 3_600_000_000)
    minutes, rem = divmod(rem, 60_000_000)
    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + f"{_fraction(rem, 1_000_000)}s"
