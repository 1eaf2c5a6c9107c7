"""Classification: text-analysis gateway client with schema-validated results."""

from jet_tracker.classification.client import ClassifierClient
from jet_tracker.classification.gateway import ChatGateway
from jet_tracker.classification.schemas import ClassificationOutcome, ClassificationResult

__all__ = [
    "ChatGateway",
    "ClassificationOutcome",
    "ClassificationResult",
    "ClassifierClient",
]
