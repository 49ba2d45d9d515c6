"""Share-of-total normalization for workstream efforts.

Raw efforts are magnitudes relative to each other; every place that shows a
percentage (API payloads, Slack text, chart images, render page) goes through
``normalize_efforts`` so all views agree.
"""
from typing import List, Sequence


def normalize_efforts(efforts: Sequence[float]) -> List[float]:
    """Return ``effort / sum * 100`` for each value, or all zeros when the sum is 0.

    No rounding or redistribution is applied; the result sums to 100 within
    floating point tolerance.
    """
    total = sum(efforts)
    if total == 0:
        return [0.0 for _ in efforts]
    return [(e / total) * 100 for e in efforts]
