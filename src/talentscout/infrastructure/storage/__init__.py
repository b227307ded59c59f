"""Storage implementations."""

from .candidates import CandidateStorage

__all__ = ["CandidateStorage"]
