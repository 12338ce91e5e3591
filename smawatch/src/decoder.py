"""
Pure decoder for raw SMA register words.

Turns the 16-bit words returned by a register read into an engineering
value: the words are assembled high word first into one unsigned integer,
checked against the sanity ceiling, and divided by a power of ten.

SMA inverters report "not available" as all-ones words (0xFFFFFFFF for U32)
and overnight produce other out-of-range codes. Any raw value at or above the
sanity ceiling is therefore returned as 0.0 rather than raised as an error.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

logger = logging.getLogger(__name__)

DEFAULT_SANITY_CEILING: int = 1_000_000
"""Raw values at or above this are treated as absent readings."""


def decode_unsigned(words: Sequence[int]) -> int:
    """Assemble 16-bit words (high word first) into an unsigned integer."""
    value = 0
    for word in words:
        value = (value << 16) | (word & 0xFFFF)
    return value


def decode_scaled(
    words: Sequence[int],
    decimals: int,
    sanity_ceiling: int = DEFAULT_SANITY_CEILING,
) -> float:
    """Decode register words and apply the decimal scale.

    Args:
        words: Raw 16-bit words from the register read, high word first.
        decimals: The raw value is divided by ``10 ** decimals``.
        sanity_ceiling: Raw values at or above this decode as ``0.0``.

    Returns:
        The scaled value, or ``0.0`` when the raw value hits the ceiling.
    """
    raw = decode_unsigned(words)
    if raw >= sanity_ceiling:
        logger.debug("Raw value %d at or above ceiling %d, using 0", raw, sanity_ceiling)
        return 0.0
    return raw / (10**decimals)
