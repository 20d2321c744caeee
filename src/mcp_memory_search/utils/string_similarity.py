"""
String similarity primitives used by the pattern engine.

All functions are pure and deterministic:
    - levenshtein: classic edit distance (insert / delete / substitute)
    - jaro / jaro_winkler: transposition-tolerant similarity in [0, 1]
    - escape_regex / wildcard_to_regex: glob and literal → regex source
"""

from __future__ import annotations

import re

# . * + ? ^ $ { } ( ) | [ ] \
_REGEX_METACHARS = re.compile(r"[.*+?^${}()|\[\]\\]")

WINKLER_SCALING = 0.1
WINKLER_MAX_PREFIX = 4


def levenshtein(a: str, b: str) -> int:
    """Edit distance between *a* and *b* (two-row dynamic programming)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current
    return previous[-1]


def jaro(a: str, b: str) -> float:
    """Jaro similarity.

    Returns 1.0 for identical strings and 0.0 when either string is empty or
    no characters match within the window ``floor(max(len)/2) - 1``.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    match_window = max(len(a), len(b)) // 2 - 1
    if match_window < 0:
        return 0.0

    a_matched = [False] * len(a)
    b_matched = [False] * len(b)
    matches = 0

    for i, char in enumerate(a):
        start = max(0, i - match_window)
        end = min(i + match_window + 1, len(b))
        for j in range(start, end):
            if b_matched[j] or b[j] != char:
                continue
            a_matched[i] = b_matched[j] = True
            matches += 1
            break

    if matches == 0:
        return 0.0

    transpositions = 0
    k = 0
    for i, char in enumerate(a):
        if not a_matched[i]:
            continue
        while not b_matched[k]:
            k += 1
        if char != b[k]:
            transpositions += 1
        k += 1

    return (matches / len(a) + matches / len(b) + (matches - transpositions / 2) / matches) / 3


def common_prefix_length(a: str, b: str, max_length: int = WINKLER_MAX_PREFIX) -> int:
    length = 0
    for char_a, char_b in zip(a[:max_length], b[:max_length]):
        if char_a != char_b:
            break
        length += 1
    return length


def jaro_winkler(a: str, b: str) -> float:
    """Jaro similarity boosted by a shared prefix of up to four characters."""
    similarity = jaro(a, b)
    prefix = common_prefix_length(a, b)
    return similarity + WINKLER_SCALING * prefix * (1 - similarity)


def escape_regex(s: str) -> str:
    r"""Backslash-escape ``. * + ? ^ $ { } ( ) | [ ] \``."""
    return _REGEX_METACHARS.sub(lambda m: "\\" + m.group(0), s)


def wildcard_to_regex(pattern: str) -> str:
    """Translate a glob (``*`` any run, ``?`` one character) into regex source.

    Escaping runs first so the substituted ``.*`` / ``.`` tokens stay live.
    """
    escaped = escape_regex(pattern)
    return escaped.replace(r"\*", ".*").replace(r"\?", ".")
