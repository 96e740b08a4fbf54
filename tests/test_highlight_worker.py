"""
Tests for background highlight passes.
"""

import time

import pytest

from srcview.core.session import ViewerSession
from srcview.workers.highlight_worker import HighlightController, HighlightWorker


@pytest.fixture
def session(clock):
    session = ViewerSession(clock=clock)
    session.set_content("f([x]) # TODO", "python")
    return session


def _wait_for(qapp, predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate() and time.monotonic() < deadline:
        qapp.processEvents()
        time.sleep(0.01)
    return predicate()


# ---------------------------------------------------------------------------
# Worker
# ---------------------------------------------------------------------------

def test_worker_emits_result(qapp, session):
    ticket = session.request_highlight()
    worker = HighlightWorker(ticket)
    results = []
    worker.signals.finished.connect(results.append)

    worker.run()

    assert len(results) == 1
    assert results[0].ticket is ticket
    assert results[0].spans == session.highlight()


def test_cancelled_worker_emits_nothing(qapp, session):
    worker = HighlightWorker(session.request_highlight())
    results = []
    worker.signals.finished.connect(results.append)

    worker.cancel()
    worker.run()

    assert results == []


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

def test_run_sync_delivers_current_result(qapp, session):
    controller = HighlightController(session)
    delivered = []
    controller.highlighted.connect(delivered.append)

    result = controller.run_sync()

    assert result is not None
    assert delivered == [result]


def test_stale_result_is_discarded(qapp, session):
    controller = HighlightController(session)
    delivered = []
    controller.highlighted.connect(delivered.append)

    stale = session.request_highlight().run()
    current = controller.run_sync()
    controller._on_finished(stale)

    assert delivered == [current]


def test_errors_only_reported_for_current_ticket(qapp, session):
    controller = HighlightController(session)
    failures = []
    controller.failed.connect(lambda error_type, message: failures.append((error_type, message)))

    stale = session.request_highlight()
    current = session.request_highlight()
    controller._on_error(stale, "ValueError", "old")
    controller._on_error(current, "ValueError", "boom")

    assert failures == [("ValueError", "boom")]


def test_submit_runs_on_pool(qapp, session):
    controller = HighlightController(session)
    delivered = []
    controller.highlighted.connect(delivered.append)

    controller.submit()
    ticket = controller.submit()
    assert controller.wait(5000)

    assert _wait_for(qapp, lambda: len(delivered) > 0)
    # Only the latest pass is delivered
    assert [result.ticket.generation for result in delivered] == [ticket.generation]
