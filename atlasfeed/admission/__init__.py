"""Admission control: window counts, dedup guards and cap pruning."""

from .pruner import enforce_discovery_caps, enforce_section_caps, prune_sections, sweep_expired
from .window import AdmissionCoordinator, AdmissionOutcome, SectionWindow, load_section_window, rank_candidates

__all__ = [
    "AdmissionCoordinator",
    "AdmissionOutcome",
    "SectionWindow",
    "enforce_discovery_caps",
    "enforce_section_caps",
    "load_section_window",
    "prune_sections",
    "rank_candidates",
    "sweep_expired",
]
