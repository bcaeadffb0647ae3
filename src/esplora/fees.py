"""Fee-rate selection from an Esplora ``/fee-estimates`` mapping."""

from __future__ import annotations

from typing import Mapping, Optional


def convert_fee_rate(target: int, estimates: Mapping[int, float]) -> Optional[float]:
    """Pick the fee rate (sat/vB) to use for a confirmation target.

    Estimates are keyed by confirmation horizon in blocks. The rate of the
    largest horizon that is not above *target* is returned; a target tighter
    than every available estimate has no answer.

    Example::

        >>> convert_fee_rate(3, {1: 5.0, 6: 2.0, 144: 1.0})
        5.0
        >>> convert_fee_rate(0, {1: 5.0}) is None
        True
    """
    eligible = [key for key in estimates if key <= target]
    if not eligible:
        return None
    return estimates[max(eligible)]
