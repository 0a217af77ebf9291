"""Duration strings accepted by command-line flags and ``SCR_*`` variables.

Flags take the looser form ``[+-]<decimal><unit>...`` with units ``ns``,
``us``, ``ms``, ``s``, ``m`` and ``h`` (``1.5s``, ``2m``, ``1m30s``). A bare
``0`` is allowed. Tape scripts keep the stricter ``<int>ms|<int>s`` syntax in
``tape.parser.parse_duration``.
"""
from __future__ import annotations

import re
from datetime import timedelta
from decimal import Decimal, InvalidOperation

_MICROSECONDS_PER_UNIT = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),
    "μs": Decimal(1),
    "ms": Decimal(1_000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}
# "ms" must be tried before "m" and "s".
_COMPONENT = re.compile(
    r"(?P<number>[0-9]*(?:\.[0-9]*)?)(?P<unit>ns|us|µs|μs|ms|s|m|h)"
)


def parse_flag_duration(text: str) -> timedelta:
    """Parse ``text`` such as ``250ms`` or ``1m30s``; raise ValueError otherwise."""
    raw = text
    sign = 1
    if raw[:1] in ("+", "-"):
        sign = -1 if raw[0] == "-" else 1
        raw = raw[1:]
    if raw == "0":
        return timedelta(0)
    if not raw:
        raise ValueError(f"invalid duration {text!r}")

    total = Decimal(0)
    position = 0
    while position < len(raw):
        match = _COMPONENT.match(raw, position)
        if match is None or match.group("number") in ("", "."):
            raise ValueError(f"invalid duration {text!r}")
        try:
            number = Decimal(match.group("number"))
        except InvalidOperation as exc:  # pragma: no cover - regex guarantees digits
            raise ValueError(f"invalid duration {text!r}") from exc
        total += number * _MICROSECONDS_PER_UNIT[match.group("unit")]
        position = match.end()

    try:
        return sign * timedelta(microseconds=int(total))
    except OverflowError as exc:
        raise ValueError(f"invalid duration {text!r}: out of range") from exc
