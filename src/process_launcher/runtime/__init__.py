"""Runtime module for subprocess spawning and stream monitoring.

This module provides isolated process creation, termination signals and
buffered stdout/stderr monitors for launched processes.
"""

from __future__ import annotations

from .process_runner import IS_WINDOWS, ProcessRunner
from .streams import StreamListener, StreamMonitor

__all__ = [
    "IS_WINDOWS",
    "ProcessRunner",
    "StreamListener",
    "StreamMonitor",
]
