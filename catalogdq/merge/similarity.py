"""Edit-distance based string similarity.

Similarity is ``1 - levenshtein(a, b) / max(len(a), len(b))`` and two empty
strings are fully similar. Case folding is the caller's responsibility.

Levenshtein distance is the classic dynamic-programming edit distance with
unit cost for insertion, deletion and substitution. It is O(len(a) * len(b)),
so SimilarityScorer truncates inputs to a configurable maximum length before
comparing free-text fields.
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 1000


def levenshtein_distance(a: str, b: str) -> int:
    """Return the edit distance between two strings.

    Only two rows of the distance matrix are kept in memory.

    Example:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("", "abc")
        3
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Iterate over the longer string so the rows stay short
    if len(a) < len(b):
        a, b = b, a

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


def similarity(a: str, b: str) -> float:
    """Return the normalized similarity of two strings in [0, 1].

    Example:
        >>> similarity("P-101", "P-101")
        1.0
        >>> similarity("", "")
        1.0
        >>> similarity("abcd", "abcf")
        0.75
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


class SimilarityScorer:
    """Scores string pairs, bounding the cost of the edit-distance computation.

    Attributes:
        max_length: Inputs longer than this are truncated before comparison.
                    None disables truncation.

    Example:
        >>> scorer = SimilarityScorer(max_length=4)
        >>> scorer.score("ABCDxxxx", "ABCDyyyy")
        1.0
    """

    def __init__(self, max_length: int | None = DEFAULT_MAX_LENGTH):
        if max_length is not None and max_length < 1:
            raise ValueError(f"max_length must be positive, got: {max_length}")
        self.max_length = max_length

    def _bound(self, value: str) -> str:
        if self.max_length is not None and len(value) > self.max_length:
            logger.debug("Truncating %d-character value to %d for scoring", len(value), self.max_length)
            return value[: self.max_length]
        return value

    def distance(self, a: str, b: str) -> int:
        return levenshtein_distance(self._bound(a), self._bound(b))

    def score(self, a: str, b: str) -> float:
        """Return similarity of the (possibly truncated) inputs."""
        return similarity(self._bound(a), self._bound(b))
