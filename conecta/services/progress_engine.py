"""
Project Progress Engine — derived category / project status and progress.

Pure functions, no I/O.  Every function accepts anything exposing the
attributes below, so ORM rows and the lightweight views in this module
are interchangeable:

    activity:  .id, .status (status key), .is_deleted
    category:  .id, .name, .activities

Qualifying activity: status != "cancelled" and not deleted.  Cancelled and
deleted activities never count toward any total.

Project progress is the GLOBAL ratio of completed to qualifying activities
across every category, not the mean of category percentages
(1 of 1 completed + 0 of 10 ⇒ 9, not 50).

Rounding is half-up to the nearest integer (12.5 → 13).
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"
CANCELLED = "cancelled"

ACTIVITY_STATUSES = (NOT_STARTED, IN_PROGRESS, COMPLETED, CANCELLED)

CATEGORY_PENDING = "pending"
CATEGORY_IN_PROGRESS = "in_progress"
CATEGORY_COMPLETED = "completed"

LABEL_NOT_STARTED = "Por iniciar"
LABEL_IN_PROGRESS = "En progreso"
LABEL_COMPLETED = "Completado"


@dataclass
class ActivityView:
    """Detached activity used by the board and the HTTP loaders."""

    id: int
    status: str = NOT_STARTED
    is_deleted: bool = False
    name: str = ""
    category_id: int | None = None


@dataclass
class CategoryView:
    id: int
    name: str = ""
    activities: list = field(default_factory=list)


@dataclass(frozen=True)
class CategoryProgress:
    id: int
    name: str
    status: str
    progress: int
    completed: int
    in_progress: int
    qualifying: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "progress": self.progress,
            "completed": self.completed,
            "in_progress": self.in_progress,
            "qualifying": self.qualifying,
        }


@dataclass(frozen=True)
class ProjectProgress:
    project_id: int
    progress: int
    label: str
    any_in_progress: bool
    categories: tuple = ()

    def category(self, category_id):
        for cat in self.categories:
            if cat.id == category_id:
                return cat
        return None

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "progress": self.progress,
            "label": self.label,
            "any_in_progress": self.any_in_progress,
            "categories": [c.to_dict() for c in self.categories],
        }


# ── Helpers ─────────────────────────────────────────────────────────────────


def round_half_up(value) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _percent(completed: int, qualifying: int) -> int:
    if qualifying == 0:
        return 0
    return round_half_up(Decimal(100 * completed) / Decimal(qualifying))


def is_qualifying(activity) -> bool:
    return activity.status != CANCELLED and not activity.is_deleted


def qualifying_activities(category) -> list:
    return [a for a in (category.activities or []) if is_qualifying(a)]


def _counts(activities) -> tuple[int, int, int]:
    qualifying = [a for a in activities if is_qualifying(a)]
    completed = sum(1 for a in qualifying if a.status == COMPLETED)
    in_progress = sum(1 for a in qualifying if a.status == IN_PROGRESS)
    return completed, in_progress, len(qualifying)


# ── Category ────────────────────────────────────────────────────────────────


def category_progress(category) -> int:
    """Completed share of the category's qualifying activities, 0–100."""
    completed, _, qualifying = _counts(category.activities or [])
    return _percent(completed, qualifying)


def category_status(category) -> str:
    """
    completed    — at least one qualifying activity and all are completed
    in_progress  — at least one qualifying activity completed or in progress
    pending      — otherwise (including a category with none qualifying)
    """
    completed, in_progress, qualifying = _counts(category.activities or [])
    if qualifying > 0 and completed == qualifying:
        return CATEGORY_COMPLETED
    if completed > 0 or in_progress > 0:
        return CATEGORY_IN_PROGRESS
    return CATEGORY_PENDING


# ── Project ─────────────────────────────────────────────────────────────────


def project_progress(categories) -> int:
    completed = qualifying = 0
    for category in categories:
        c, _, q = _counts(category.activities or [])
        completed += c
        qualifying += q
    return _percent(completed, qualifying)


def any_activity_in_progress(categories) -> bool:
    return any(
        a.status == IN_PROGRESS
        for category in categories
        for a in qualifying_activities(category)
    )


def project_status_label(progress: int, any_in_progress: bool) -> str:
    if progress == 100:
        return LABEL_COMPLETED
    if progress > 0 or any_in_progress:
        return LABEL_IN_PROGRESS
    return LABEL_NOT_STARTED


def summarize_project(project_id, categories) -> ProjectProgress:
    """Recompute every derived value for a project from scratch."""
    categories = list(categories)
    per_category = []
    for category in categories:
        completed, in_progress, qualifying = _counts(category.activities or [])
        per_category.append(CategoryProgress(
            id=category.id,
            name=category.name,
            status=category_status(category),
            progress=_percent(completed, qualifying),
            completed=completed,
            in_progress=in_progress,
            qualifying=qualifying,
        ))
    progress = project_progress(categories)
    in_progress = any_activity_in_progress(categories)
    return ProjectProgress(
        project_id=project_id,
        progress=progress,
        label=project_status_label(progress, in_progress),
        any_in_progress=in_progress,
        categories=tuple(per_category),
    )
