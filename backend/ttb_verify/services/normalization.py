"""Text normalization and string similarity primitives.

Every fuzzy comparator in the service is built on ``jaro_winkler``. The
thresholds in ``config.Settings`` are calibrated against this exact formula,
so it is implemented here rather than delegated to a library variant (which
would apply the Winkler boost only above a 0.7 Jaro score and score two empty
strings as identical).
"""

import re

# Winkler prefix boost
PREFIX_SCALE = 0.1
MAX_PREFIX_LENGTH = 4

# Word diff collapses to a summary when more than this share of words is missing
WORD_DIFF_SUMMARY_RATIO = 0.5

_CURLY_SINGLE = re.compile(r"[‘’‚‛′]")
_CURLY_DOUBLE = re.compile(r"[“”„‟″]")


def normalize_text(text: str) -> str:
    """
    Normalize text for comparison where formatting noise must not matter.

    - Lowercase
    - Unify curly quotes/apostrophes
    - Remove punctuation except apostrophes, quotes and hyphens
    - Collapse whitespace
    """
    if not text:
        return ""
    text = text.lower()
    text = _CURLY_SINGLE.sub("'", text)
    text = _CURLY_DOUBLE.sub('"', text)
    text = re.sub(r"[^\w\s'\"-]", "", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace only; case and punctuation are preserved."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def jaro_winkler(s1: str, s2: str) -> float:
    """
    Jaro-Winkler similarity in [0, 1].

    Jaro uses a match window of floor(max(len) / 2) - 1 and counts half
    transpositions; the Winkler step adds ``PREFIX_SCALE`` per shared leading
    character (up to ``MAX_PREFIX_LENGTH``).

    Returns 1.0 for identical non-empty strings and 0.0 when either string is
    empty (including two empty strings) or no characters match.
    """
    if not s1 or not s2:
        return 0.0
    if s1 == s2:
        return 1.0

    len1, len2 = len(s1), len(s2)
    match_distance = max(len1, len2) // 2 - 1
    s1_matches = [False] * len1
    s2_matches = [False] * len2

    matches = 0
    for i in range(len1):
        start = max(0, i - match_distance)
        end = min(i + match_distance + 1, len2)
        for j in range(start, end):
            if s2_matches[j] or s1[i] != s2[j]:
                continue
            s1_matches[i] = True
            s2_matches[j] = True
            matches += 1
            break

    if matches == 0:
        return 0.0

    transpositions = 0
    k = 0
    for i in range(len1):
        if not s1_matches[i]:
            continue
        while not s2_matches[k]:
            k += 1
        if s1[i] != s2[k]:
            transpositions += 1
        k += 1

    jaro = (
        matches / len1
        + matches / len2
        + (matches - transpositions / 2) / matches
    ) / 3

    prefix_length = 0
    for i in range(min(len1, len2, MAX_PREFIX_LENGTH)):
        if s1[i] != s2[i]:
            break
        prefix_length += 1

    return jaro + prefix_length * PREFIX_SCALE * (1 - jaro)


def word_diff(expected: str, found: str) -> str:
    """
    Human-readable word-set difference between expected and found text.

    Collapses to a percentage summary when most expected words are missing,
    since listing dozens of words is not useful to a reviewer.
    """
    expected_words = expected.split()
    found_words = found.split()
    found_set = set(found_words)
    expected_set = set(expected_words)

    missing = [w for w in expected_words if w not in found_set]
    extra = [w for w in found_words if w not in expected_set]

    if expected_words and len(missing) / len(expected_words) > WORD_DIFF_SUMMARY_RATIO:
        pct = len(missing) / len(expected_words)
        return (
            f"Text differs substantially: {pct:.0%} of expected words missing "
            f"({len(missing)} of {len(expected_words)})"
        )

    parts = []
    if missing:
        parts.append(f'Missing: "{", ".join(missing)}"')
    if extra:
        parts.append(f'Extra: "{", ".join(extra)}"')

    return "; ".join(parts) if parts else "Text differs"
