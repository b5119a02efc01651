"""
Kanban activity board — optimistic status moves for one project.

The board holds the project's categories/activities in memory and keeps a
derived ``ProjectProgress`` snapshot that is recomputed from scratch after
every mutation, so the in-place state always equals ``summarize_project``.

Move protocol (double-drag safe):

    pending = board.begin_move(activity_id, "completed")   # applied, unconfirmed
    ok = backend.update_activity_status(...)               # one call, no retry
    board.resolve_move(pending, ok)

Every ``begin_move`` issues a new per-activity token.  ``resolve_move``
only acts when the token is still the latest one for that activity; an
older response arriving late is ignored.  On success the activity is
confirmed and the status-change callback fires with
``(project_id, progress, label)``.  On failure the optimistic status stays
visible but unconfirmed until the caller decides to ``rollback``.

The backend is anything exposing ``update_activity_status(project_id,
category_id, activity_id, status)`` and ``delete_activity(project_id,
category_id, activity_id)``; ``ConectaGateway`` is the production one.
"""

import itertools
import logging
from dataclasses import dataclass

from conecta.integrations.conecta_gateway import GatewayError
from conecta.services.progress_engine import ACTIVITY_STATUSES, summarize_project

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingMove:
    activity_id: int
    token: int
    previous_status: str
    new_status: str


class ActivityBoard:
    def __init__(self, project_id, categories, backend=None, on_status_change=None):
        self.project_id = project_id
        self.categories = list(categories)
        self.backend = backend
        self.on_status_change = on_status_change

        self._tokens = itertools.count(1)
        self._latest: dict[int, int] = {}
        self._confirmed_status: dict[int, str] = {}
        self._unconfirmed: set[int] = set()
        self._summary = summarize_project(project_id, self.categories)

    @classmethod
    def load(cls, project_id, loader, backend=None, on_status_change=None):
        """Build a board from a category loader (see ``category_loader``)."""
        return cls(project_id, loader.load(project_id), backend, on_status_change)

    # ── Read side ───────────────────────────────────────────────────────────

    @property
    def summary(self):
        return self._summary

    @property
    def progress(self) -> int:
        return self._summary.progress

    @property
    def label(self) -> str:
        return self._summary.label

    def find(self, activity_id):
        """Return ``(category, activity)`` or raise KeyError."""
        for category in self.categories:
            for activity in category.activities:
                if activity.id == activity_id:
                    return category, activity
        raise KeyError(f"Activity {activity_id} is not on this board")

    def is_confirmed(self, activity_id) -> bool:
        return activity_id not in self._unconfirmed

    def _recompute(self):
        self._summary = summarize_project(self.project_id, self.categories)

    def _notify(self):
        if self.on_status_change is not None:
            self.on_status_change(self.project_id, self._summary.progress, self._summary.label)

    # ── Move protocol ───────────────────────────────────────────────────────

    def begin_move(self, activity_id, new_status) -> PendingMove:
        if new_status not in ACTIVITY_STATUSES:
            raise ValueError(f"Unknown activity status: {new_status!r}")
        _, activity = self.find(activity_id)

        previous = activity.status
        self._confirmed_status.setdefault(activity_id, previous)
        token = next(self._tokens)
        self._latest[activity_id] = token
        self._unconfirmed.add(activity_id)

        activity.status = new_status
        self._recompute()
        return PendingMove(activity_id, token, previous, new_status)

    def resolve_move(self, pending: PendingMove, ok: bool) -> bool:
        """Apply a backend result.  Returns False when the result is stale."""
        if self._latest.get(pending.activity_id) != pending.token:
            logger.debug(
                "Ignoring stale status response for activity %s (token %s)",
                pending.activity_id, pending.token,
                extra={"project_id": self.project_id, "activity_id": pending.activity_id},
            )
            return False

        if not ok:
            logger.warning(
                "Status move not confirmed for activity %s (%s → %s)",
                pending.activity_id, pending.previous_status, pending.new_status,
                extra={"project_id": self.project_id, "activity_id": pending.activity_id},
            )
            return True

        self._unconfirmed.discard(pending.activity_id)
        self._confirmed_status.pop(pending.activity_id, None)
        self._latest.pop(pending.activity_id, None)
        self._notify()
        return True

    def rollback(self, activity_id) -> bool:
        """Restore the last confirmed status of an unconfirmed activity."""
        if activity_id not in self._unconfirmed:
            return False
        _, activity = self.find(activity_id)
        activity.status = self._confirmed_status.pop(activity_id)
        self._unconfirmed.discard(activity_id)
        # Any response still in flight for this activity is now stale
        self._latest.pop(activity_id, None)
        self._recompute()
        return True

    def move_activity(self, activity_id, new_status) -> bool:
        """Optimistic move + one backend call + resolve.  Never raises on I/O."""
        category, _ = self.find(activity_id)
        pending = self.begin_move(activity_id, new_status)
        try:
            self.backend.update_activity_status(
                self.project_id, category.id, activity_id, new_status,
            )
            ok = True
        except GatewayError as exc:
            logger.error(
                "Failed to update activity %s status: %s", activity_id, exc,
                extra={"project_id": self.project_id, "activity_id": activity_id},
            )
            ok = False
        self.resolve_move(pending, ok)
        return ok

    def remove_activity(self, activity_id) -> bool:
        """Soft-delete through the backend and drop the activity from progress."""
        category, activity = self.find(activity_id)
        try:
            self.backend.delete_activity(self.project_id, category.id, activity_id)
        except GatewayError as exc:
            logger.error(
                "Failed to delete activity %s: %s", activity_id, exc,
                extra={"project_id": self.project_id, "activity_id": activity_id},
            )
            return False
        activity.is_deleted = True
        self._unconfirmed.discard(activity_id)
        self._confirmed_status.pop(activity_id, None)
        self._latest.pop(activity_id, None)
        self._recompute()
        self._notify()
        return True
