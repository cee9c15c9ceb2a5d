"""
Writer loop components: batch window, commit coordination and the control loop.
"""

from .batch import BatchAccumulator
from .commit import CommitCoordinator
from .sink_writer import SinkWriter

__all__ = ["BatchAccumulator", "CommitCoordinator", "SinkWriter"]
