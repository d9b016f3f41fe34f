"""
Parameter combination generator.

Cartesian product over named ranges, computed with a mixed-radix counter
instead of recursion so depth doesn't grow with the number of parameters.
"""

from typing import Dict, Iterator, List, Mapping, Sequence


def count_combinations(ranges: Mapping[str, Sequence[float]]) -> int:
    """Total combinations; 0 for an empty mapping."""
    if not ranges:
        return 0
    total = 1
    for values in ranges.values():
        total *= len(values)
    return total


def iter_combinations(ranges: Mapping[str, Sequence[float]]) -> Iterator[Dict[str, float]]:
    """
    Yield one {name: value} mapping per element of the cartesian product.

    The last name varies fastest. ``ranges`` is not modified.
    """
    axes = [(name, list(values)) for name, values in ranges.items()]
    total = count_combinations(ranges)

    for index in range(total):
        combo: Dict[str, float] = {}
        remainder = index
        for name, values in reversed(axes):
            remainder, digit = divmod(remainder, len(values))
            combo[name] = values[digit]
        # Restore declaration order of the names
        yield {name: combo[name] for name, _ in axes}


def generate_combinations(ranges: Mapping[str, Sequence[float]]) -> List[Dict[str, float]]:
    """
    All parameter combinations, materialized.

    Example:
        generate_combinations({"period": [10, 20], "threshold": [0.5, 1.0, 1.5]})
        Returns 6 combinations
    """
    return list(iter_combinations(ranges))
