"""
Background workers for non-blocking highlighting.

All workers use Qt signals for thread-safe communication
with the UI thread.
"""

from srcview.workers.highlight_worker import (
    HighlightController,
    HighlightWorker,
    WorkerSignals,
)

__all__ = [
    'HighlightController',
    'HighlightWorker',
    'WorkerSignals',
]
