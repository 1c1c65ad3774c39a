"""
Background helpers for long-running processes.

ResultPoller
    Fallback for consumers that cannot subscribe to the status signals: every
    interval it asks the repository for scores and results changed since the
    previous tick and hands them to a callback.

DraftAutosaver
    Debounces score entry. Every edit restarts a quiet-period timer; when the
    timer fires only the latest values per student are saved as drafts.
"""
import logging
import threading

from django.db import DatabaseError, close_old_connections, connection
from django.utils import timezone

from .conf import results_setting
from .exceptions import ResultWorkflowError

logger = logging.getLogger(__name__)


class ResultPoller:

    def __init__(self, repository, callback, interval_seconds=None, school=None, clock=timezone.now):
        self.repository = repository
        self.callback = callback
        self.interval_seconds = interval_seconds or results_setting("POLL_INTERVAL_SECONDS")
        self.school = school
        self.clock = clock
        self.since = clock()
        self._stop = threading.Event()
        self._thread = None

    @property
    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self):
        """Fetch changes since the last tick. Returns (scores, results)."""
        now = self.clock()
        scores, results = self.repository.changed_since(self.since, school=self.school)
        self.since = now
        if scores or results:
            logger.info("Poll found %s score and %s result changes", len(scores), len(results))
            self.callback(scores, results)
        return scores, results

    def _loop(self):
        logger.info("Result poller started (checking every %ss)", self.interval_seconds)
        while not self._stop.is_set():
            try:
                self.poll_once()
            except DatabaseError:
                logger.exception("Result poll failed")
            finally:
                close_old_connections()
            self._stop.wait(self.interval_seconds)
        logger.info("Result poller stopped")

    def start(self):
        if self.is_running:
            logger.warning("Result poller is already running")
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="result-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout=None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


class DraftAutosaver:
    """
    Collects edits for one subject assignment and saves them after a quiet
    period through ``ScoreService.save_drafts``.
    """

    def __init__(self, score_service, user, assignment, quiet_seconds=None, on_saved=None):
        self.score_service = score_service
        self.user = user
        self.assignment = assignment
        self.quiet_seconds = quiet_seconds if quiet_seconds is not None else results_setting("AUTOSAVE_QUIET_SECONDS")
        self.on_saved = on_saved
        self._pending = {}
        self._lock = threading.Lock()
        self._timer = None

    @property
    def pending(self):
        with self._lock:
            return dict(self._pending)

    def edit(self, student_id, ca1=None, ca2=None, exam=None, version=None):
        with self._lock:
            self._pending[student_id] = {
                "student_id": student_id,
                "ca1": ca1,
                "ca2": ca2,
                "exam": exam,
                "version": version,
            }
            self._restart_timer()

    def _restart_timer(self):
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(self.quiet_seconds, self._flush_in_timer)
        self._timer.daemon = True
        self._timer.start()

    def _flush_in_timer(self):
        try:
            self.flush()
        finally:
            connection.close()

    def cancel(self):
        """Drop unsaved edits, e.g. when the teacher leaves the page."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            dropped = len(self._pending)
            self._pending.clear()
        if dropped:
            logger.info("Autosave cancelled with %s unsaved edits", dropped)

    def flush(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            entries = list(self._pending.values())
            self._pending.clear()
        if not entries:
            return None
        try:
            outcome = self.score_service.save_drafts(self.user, self.assignment, entries)
        except (ResultWorkflowError, DatabaseError):
            logger.exception("Autosave failed for assignment %s", self.assignment.pk)
            raise
        if self.on_saved is not None:
            self.on_saved(outcome)
        return outcome
