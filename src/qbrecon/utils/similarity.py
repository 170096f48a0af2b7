"""QuickBooks account name normalization and fuzzy matching."""

from dataclasses import dataclass
import re
from typing import Iterable

from rapidfuzz.distance import Levenshtein

DEFAULT_SIMILARITY_THRESHOLD = 0.7

# Score given to candidates that only differ from the target after normalization.
NORMALIZED_MATCH_SCORE = 0.99

_WHITESPACE = re.compile(r"\s+")
_PARENTHETICAL = re.compile(r"\s*\([^)]*\)\s*")

# Word-boundary patterns; a trailing period belongs to the abbreviation.
_ABBREVIATIONS = (
    (re.compile(r"\bexp\b\.?"), "expenses"),
    (re.compile(r"\bent\b\.?"), "entertainment"),
    (re.compile(r"\bsvc\b\.?"), "service"),
    (re.compile(r"\bsvcs\b\.?"), "services"),
    (re.compile(r"\bmgmt\b\.?"), "management"),
    (re.compile(r"\badmin\b\.?"), "administration"),
    (re.compile(r"\butil\b\.?"), "utilities"),
    (re.compile(r"\bmaint\b\.?"), "maintenance"),
    (re.compile(r"\binsur\b\.?"), "insurance"),
)


@dataclass(frozen=True)
class SimilarName:
    """A candidate name and its similarity score to a target."""

    name: str
    similarity: float


def _fold(name: str) -> str:
    return _WHITESPACE.sub(" ", name.strip().lower())


def normalize_qb_name(name: str) -> str:
    """Canonicalize a QuickBooks account name for comparison.

    Lowercases, collapses whitespace, replaces ``&`` with ``and``, drops
    parenthetical notes such as ``(Exp)`` or ``(2024)`` and expands common
    bookkeeping abbreviations.

    Args:
        name: Raw QuickBooks account name

    Returns:
        Normalized name (empty string for empty input)
    """
    if not name:
        return ""

    normalized = _fold(name).replace("&", "and")
    normalized = _fold(_PARENTHETICAL.sub(" ", normalized))

    for pattern, replacement in _ABBREVIATIONS:
        normalized = pattern.sub(replacement, normalized)

    return _fold(normalized)


def calculate_similarity(a: str, b: str) -> float:
    """Return 1 - edit distance / longer length over normalized forms.

    Names that normalize identically score 1.0 without computing the
    edit distance.
    """
    if not a or not b:
        return 0.0

    normalized_a = normalize_qb_name(a)
    normalized_b = normalize_qb_name(b)
    if normalized_a == normalized_b:
        return 1.0

    max_length = max(len(normalized_a), len(normalized_b))
    distance = Levenshtein.distance(normalized_a, normalized_b)
    return 1.0 - distance / max_length


def find_similar(
    target: str,
    candidates: Iterable[str],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> list[SimilarName]:
    """Find candidate names that look like the target.

    Candidates equal to the target (ignoring case and surrounding
    whitespace) are excluded. Candidates that only match after
    normalization score 0.99.

    Args:
        target: Name to compare against
        candidates: Names to score
        threshold: Minimum score to keep (0-1)

    Returns:
        Matches sorted by score, highest first
    """
    if not target:
        return []

    folded_target = _fold(target)
    normalized_target = normalize_qb_name(target)
    results: list[SimilarName] = []

    for candidate in candidates:
        if not candidate or _fold(candidate) == folded_target:
            continue

        if normalize_qb_name(candidate) == normalized_target:
            results.append(SimilarName(candidate, NORMALIZED_MATCH_SCORE))
            continue

        score = calculate_similarity(target, candidate)
        if score >= threshold:
            results.append(SimilarName(candidate, score))

    results.sort(key=lambda match: match.similarity, reverse=True)
    return results


def group_similar(names: list[str], threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> list[list[str]]:
    """Greedily group names: each unused name seeds a group of its similar names."""
    used: set[str] = set()
    groups: list[list[str]] = []

    for name in names:
        if name in used:
            continue
        group = [name]
        used.add(name)
        for match in find_similar(name, names, threshold):
            if match.name not in used:
                group.append(match.name)
                used.add(match.name)
        groups.append(group)

    return groups


def are_names_equivalent(a: str, b: str) -> bool:
    """True when both names normalize to the same non-empty string."""
    if not a or not b:
        return False
    return normalize_qb_name(a) == normalize_qb_name(b)
