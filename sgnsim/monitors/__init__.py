"""
Recording of state variables during a run.
"""
from .statemonitor import StateMonitor

__all__ = ["StateMonitor"]
