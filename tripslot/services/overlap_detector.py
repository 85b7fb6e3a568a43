"""
Pairwise interval checks on minutes-since-midnight.

Intervals are half-open [start, end): an activity ending at 10:00 does not
overlap one starting at 10:00.
"""


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and b_start < a_end


def overlap_minutes(a_start: int, a_end: int, b_start: int, b_end: int) -> int:
    """Length of the shared part of two intervals (0 when disjoint)."""
    return max(0, min(a_end, b_end) - max(a_start, b_start))


def gap_minutes(a_start: int, a_end: int, b_start: int, b_end: int) -> int:
    """
    Free time between two intervals, whichever comes first.

    Returns a negative number when the intervals overlap.
    """
    if a_start <= b_start:
        return b_start - a_end
    return a_start - b_end
