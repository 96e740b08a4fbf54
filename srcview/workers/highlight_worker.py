"""
Background highlight passes.

Provides:
- HighlightWorker: a QRunnable composing one HighlightTicket
- HighlightController: submits passes for a session to a QThreadPool and
  forwards only results that are still current

All communication with the UI thread goes through Qt signals.
"""

from __future__ import annotations

import logging
from typing import Optional

from PyQt6.QtCore import QObject, QRunnable, QThreadPool, pyqtSignal, pyqtSlot

from srcview.core.session import HighlightResult, HighlightTicket, ViewerSession


class WorkerSignals(QObject):
    """
    Signals for worker communication.

    These signals are used to communicate between
    the worker thread and the UI thread.
    """
    # Pass finished with a HighlightResult
    finished = pyqtSignal(object)

    # Pass failed: (ticket, error_type, message)
    error = pyqtSignal(object, str, str)


class HighlightWorker(QRunnable):
    """
    Runs one highlight ticket on a pool thread.

    A cancelled worker still runs to completion (every pass is total)
    but emits nothing.
    """

    def __init__(self, ticket: HighlightTicket):
        super().__init__()
        self.ticket = ticket
        self.signals = WorkerSignals()
        self._cancelled = False
        self.setAutoDelete(True)

    @pyqtSlot()
    def run(self) -> None:
        """Compose the ticket's overlays."""
        try:
            result = self.ticket.run()
        except Exception as e:
            logging.error(f"HighlightWorker - Pass {self.ticket.generation} failed: {e}")
            self.signals.error.emit(self.ticket, type(e).__name__, str(e))
            return

        if not self._cancelled:
            self.signals.finished.emit(result)

    def cancel(self) -> None:
        """Request cancellation."""
        self._cancelled = True


class HighlightController(QObject):
    """
    Latest-wins highlighting for one session.

    Usage:
        controller = HighlightController(session)
        controller.highlighted.connect(apply_spans)
        controller.submit()
    """

    # Current HighlightResult
    highlighted = pyqtSignal(object)

    # (error_type, message) for a current pass that failed
    failed = pyqtSignal(str, str)

    def __init__(
        self,
        session: ViewerSession,
        pool: Optional[QThreadPool] = None,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent)
        self.session = session
        self.pool = pool or QThreadPool.globalInstance()
        self._active: Optional[HighlightWorker] = None

    def submit(self) -> HighlightTicket:
        """Start a pass for the session's current state."""
        if self._active is not None:
            self._active.cancel()

        ticket = self.session.request_highlight()
        worker = HighlightWorker(ticket)
        worker.signals.finished.connect(self._on_finished)
        worker.signals.error.connect(self._on_error)
        self._active = worker

        self.pool.start(worker)
        return ticket

    def run_sync(self) -> Optional[HighlightResult]:
        """Run a pass on the calling thread, for tests and small buffers."""
        ticket = self.session.request_highlight()
        result = ticket.run()
        return result if self._deliver(result) else None

    def wait(self, msecs: int = -1) -> bool:
        """Block until queued passes finish."""
        return self.pool.waitForDone(msecs)

    @pyqtSlot(object)
    def _on_finished(self, result: HighlightResult) -> None:
        self._deliver(result)

    @pyqtSlot(object, str, str)
    def _on_error(self, ticket: HighlightTicket, error_type: str, message: str) -> None:
        if self.session.scheduler.is_current(ticket):
            self._active = None
            self.failed.emit(error_type, message)

    def _deliver(self, result: HighlightResult) -> bool:
        if not self.session.accept(result):
            return False
        self._active = None
        self.highlighted.emit(result)
        return True
