"""Duplicate detection and entity merge.

SimilarityScorer turns edit distance into a [0, 1] score, DuplicateDetector
uses it to pair up likely duplicates under a DuplicateMatchRule, and
MergeEngine consolidates a chosen pair inside one store transaction.
"""

from catalogdq.merge.detector import DuplicateCandidate, DuplicateDetector, DuplicateMatchRule
from catalogdq.merge.engine import (
    MergeEngine,
    MergeRequest,
    MergeResult,
    MergeStrategy,
    merge_entities,
)
from catalogdq.merge.similarity import SimilarityScorer, levenshtein_distance, similarity

__all__ = [
    # Similarity
    "SimilarityScorer",
    "levenshtein_distance",
    "similarity",
    # Detection
    "DuplicateMatchRule",
    "DuplicateCandidate",
    "DuplicateDetector",
    # Merge
    "MergeStrategy",
    "MergeRequest",
    "MergeResult",
    "MergeEngine",
    "merge_entities",
]
