"""
Analytics Module
"""
from .locks import KeyedLock
from .scheduler import SummaryRefresher
from .summary import Interaction, SummaryCounters, SummaryEngine, compute_counters

__all__ = [
    "KeyedLock",
    "SummaryRefresher",
    "Interaction",
    "SummaryCounters",
    "SummaryEngine",
    "compute_counters",
]
