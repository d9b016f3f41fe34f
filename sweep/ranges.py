"""
Numeric parameter ranges.

Stepped ranges progress additively, product ranges multiplicatively.
Both always yield at least one value.
"""

from typing import List

from core.errors import InvalidRangeError


def stepped_range(start: float, end: float, step: float = 1.0) -> List[float]:
    """
    Additive range from start towards end.

    ``end`` is not guaranteed to be hit; a value landing exactly on it is
    included. A degenerate range (start >= end or step < 0) is ``[start]``.

    Example:
        stepped_range(0, 10, 2.5) -> [0, 2.5, 5.0, 7.5, 10.0]
    """
    if step == 0:
        raise InvalidRangeError("Parameter step cannot equal zero.")

    if start < end and step > 0:
        values = []
        x = start
        while x - end <= 0:
            values.append(x)
            x += step
        return values
    return [start]


def product_range(start: float, end: float, factor: float = 2.0) -> List[float]:
    """
    Multiplicative range: start, start*factor, start*factor^2, ... <= end.

    Example:
        product_range(1, 100, 10) -> [1, 10, 100]
    """
    if factor < 2:
        raise InvalidRangeError("Parameter factor cannot be less than 2.")

    if start < end:
        if start <= 0:
            # Never grows towards end
            raise InvalidRangeError("Product range start must be positive.")
        values = []
        x = start
        while x <= end:
            values.append(x)
            x *= factor
        return values
    return [start]
