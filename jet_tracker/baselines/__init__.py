"""Baselines: tracking windows that bound collection runs."""

from jet_tracker.baselines.manager import BaselineManager
from jet_tracker.baselines.repository import BaselineRepository
from jet_tracker.baselines.schemas import Baseline, BaselineStatus

__all__ = ["Baseline", "BaselineManager", "BaselineRepository", "BaselineStatus"]
