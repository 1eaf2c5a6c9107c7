"""Services layer - collection runs and enrichment passes."""

from jet_tracker.services.collection_service import CollectionOrchestrator
from jet_tracker.services.factory import create_schema, open_orchestrator
from jet_tracker.services.schemas import (
    BackfillSummary,
    CleanSummary,
    ProcessSummary,
    RunSummary,
    SourceResult,
)

__all__ = [
    "BackfillSummary",
    "CleanSummary",
    "CollectionOrchestrator",
    "ProcessSummary",
    "RunSummary",
    "SourceResult",
    "create_schema",
    "open_orchestrator",
]
