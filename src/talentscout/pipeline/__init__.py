"""Collection, deduplication, scoring and assembly pipeline."""

from .assemble import assemble_result
from .dedupe import DedupeEngine
from .email_confidence import classify_email
from .orchestrator import CollectionOrchestrator, CollectionReport
from .score import ScoringEngine
from .search import SearchPipeline, build_criteria

__all__ = [
    "assemble_result",
    "DedupeEngine",
    "classify_email",
    "CollectionOrchestrator",
    "CollectionReport",
    "ScoringEngine",
    "SearchPipeline",
    "build_criteria",
]
