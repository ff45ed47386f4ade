"""RPM-style version ordering used by release favoring."""

from __future__ import annotations

import string

_ALNUM = frozenset(string.ascii_letters + string.digits)


def _segment(value: str, start: int, chars: frozenset[str] | str) -> tuple[str, int]:
    end = start
    while end < len(value) and value[end] in chars:
        end += 1
    return value[start:end], end


def rpmvercmp(left: str, right: str) -> int:
    """Compare two version (or release) strings the way rpm does.

    Returns -1, 0 or 1. Digit runs compare numerically, letter runs
    lexically, digits outrank letters, ``~`` sorts before anything
    (including the end of the string) and ``^`` sorts after the end of the
    string but before any other segment.
    """
    if left == right:
        return 0

    i = j = 0
    while i < len(left) or j < len(right):
        while i < len(left) and left[i] not in _ALNUM and left[i] not in "~^":
            i += 1
        while j < len(right) and right[j] not in _ALNUM and right[j] not in "~^":
            j += 1

        one = left[i] if i < len(left) else ""
        two = right[j] if j < len(right) else ""

        if one == "~" or two == "~":
            if one != "~":
                return 1
            if two != "~":
                return -1
            i += 1
            j += 1
            continue

        if one == "^" or two == "^":
            if not one:
                return -1
            if not two:
                return 1
            if one != "^":
                return 1
            if two != "^":
                return -1
            i += 1
            j += 1
            continue

        if not (one and two):
            break

        if one in string.digits:
            seg_one, i = _segment(left, i, string.digits)
            seg_two, j = _segment(right, j, string.digits)
            numeric = True
        else:
            seg_one, i = _segment(left, i, string.ascii_letters)
            seg_two, j = _segment(right, j, string.ascii_letters)
            numeric = False

        if not seg_two:
            return 1 if numeric else -1

        if numeric:
            seg_one = seg_one.lstrip("0")
            seg_two = seg_two.lstrip("0")
            if len(seg_one) != len(seg_two):
                return 1 if len(seg_one) > len(seg_two) else -1

        if seg_one != seg_two:
            return 1 if seg_one > seg_two else -1

    if i >= len(left) and j >= len(right):
        return 0
    return -1 if i >= len(left) else 1


def compare_evr(left: tuple[int, str, str], right: tuple[int, str, str]) -> int:
    """Compare (epoch, version, release) triples."""
    if left[0] != right[0]:
        return 1 if left[0] > right[0] else -1
    result = rpmvercmp(left[1], right[1])
    if result:
        return result
    return rpmvercmp(left[2], right[2])
