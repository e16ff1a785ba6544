"""Dedupe core: fingerprints, recursion scope and the per-target cache."""

from trackbot.dedupe.cache import DedupeCache, DedupeEntry, ExpiryPolicy
from trackbot.dedupe.fingerprint import CommitFingerprint, Fingerprint, IssueFingerprint
from trackbot.dedupe.scope import RecursionScope

__all__ = [
    "CommitFingerprint",
    "DedupeCache",
    "DedupeEntry",
    "ExpiryPolicy",
    "Fingerprint",
    "IssueFingerprint",
    "RecursionScope",
]
