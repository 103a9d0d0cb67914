"""
Collection polling module.

Handles collection windows and the per-cycle orchestration of
organizations and metricsets.
"""
from .window import CollectionWindow, WindowPlanner, window_timespan
from .orchestrator import CollectionOrchestrator, CycleReport, OrganizationResult

__all__ = [
    "CollectionWindow",
    "WindowPlanner",
    "window_timespan",
    "CollectionOrchestrator",
    "CycleReport",
    "OrganizationResult",
]
