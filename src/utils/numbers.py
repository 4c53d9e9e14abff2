# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Numeric helpers shared by input validation and scoring.

Every rounding in the engine goes through round_half_up so that a value
such as 78.5 becomes 79 whether it arrives as a session field or comes out
of the score formula.
"""

import math
from fractions import Fraction
from typing import Any


def round_half_up(value: Fraction | int | float) -> int:
    """Round to the nearest integer, with .5 going up.

    Floats are taken by their decimal text, so 2.5 is exactly 5/2 and
    rounds to 3.

    Raises:
        ValueError: If value is a non-finite float.
    """
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Cannot round non-finite value: {value!r}")
        value = Fraction(repr(value))
    return math.floor(Fraction(value) + Fraction(1, 2))


def to_float(value: Any) -> float:
    """Convert a raw numeric field to float.

    Integers too large for a float become infinity instead of raising
    OverflowError, so callers only need to handle non-finite results.

    Raises:
        ValueError: If value is not numeric text or a number.
        TypeError: If value has an unsupported type.
    """
    try:
        return float(value)
    except OverflowError:
        return math.inf if value > 0 else -math.inf
