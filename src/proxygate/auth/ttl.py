"""
proxygate.auth.ttl

Parsing of token lifetimes given by administrators ("30m", "24h", "7d", "1h30m", "-1s").
"""

from __future__ import annotations

import re
from datetime import timedelta

_PART = re.compile(r"(\d+(?:\.\d+)?)([smhd])")

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_ttl(value: str) -> timedelta:
    raw = value.strip()
    sign = 1
    if raw.startswith(("+", "-")):
        sign = -1 if raw[0] == "-" else 1
        raw = raw[1:]

    seconds = 0.0
    pos = 0
    for m in _PART.finditer(raw):
        if m.start() != pos:
            break
        seconds += float(m.group(1)) * _UNIT_SECONDS[m.group(2)]
        pos = m.end()

    if pos == 0 or pos != len(raw):
        raise ValueError(f"invalid ttl {value!r}; expected e.g. 30m, 24h, 7d")
    return timedelta(seconds=sign * seconds)
