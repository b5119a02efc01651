"""
Project execution service — projects, categories and kanban activities.

Business rules enforced here (not in blueprints):
    - Category names are unique among a project's live categories.
    - Activities are created in "Por iniciar" (status 1) unless told otherwise.
    - Deletes are soft; deleted rows drop out of every progress computation.
    - Category status/progress and project progress/label are never stored:
      every read and every status change recomputes them through the
      progress engine from the persisted activities.
"""

import logging

from sqlalchemy import func, select

from conecta.core.exceptions import ConflictError, NotFoundError, ValidationError
from conecta.models import db
from conecta.models.project import (
    ACTIVITY_NOT_STARTED,
    ACTIVITY_STATUS_KEYS,
    Project,
    ProjectCategory,
    ProjectCategoryActivity,
)
from conecta.models.project_request import ProjectRequest
from conecta.services import progress_engine
from conecta.services.category_loader import default_loader
from conecta.services.helpers.scoped_queries import commit_or_raise, get_live, get_scoped
from conecta.utils.helpers import parse_date

logger = logging.getLogger(__name__)

_ACTIVITY_FIELDS = ("name", "description", "assigned_to", "observations")
_ACTIVITY_DATE_FIELDS = ("date_tentative_start", "date_tentative_end")


# ── Private helpers ────────────────────────────────────────────────────────────


def _require_text(data: dict, field: str) -> str:
    value = (data.get(field) or "").strip()
    if not value:
        raise ValidationError(f"{field} is required", details={field: "required"})
    return value


def _validate_status_id(status_id) -> int:
    if isinstance(status_id, bool):
        status_id = None
    try:
        status_id = int(status_id)
    except (TypeError, ValueError):
        status_id = None
    if status_id not in ACTIVITY_STATUS_KEYS:
        raise ValidationError(
            "status_id must be one of 1, 2, 3, 4",
            details={"status_id": sorted(ACTIVITY_STATUS_KEYS)},
        )
    return status_id


def _assert_unique_category_name(project_id: int, name: str, exclude_id: int | None = None):
    stmt = select(ProjectCategory.id).where(
        ProjectCategory.project_id == project_id,
        ProjectCategory.is_deleted.is_(False),
        func.lower(ProjectCategory.name) == name.lower(),
    )
    if exclude_id is not None:
        stmt = stmt.where(ProjectCategory.id != exclude_id)
    if db.session.execute(stmt).first():
        raise ConflictError(resource="ProjectCategory", field="name", value=name)


def _get_category(project_id: int, category_id: int) -> ProjectCategory:
    get_live(Project, project_id)
    return get_scoped(ProjectCategory, category_id, project_id=project_id)


def _get_activity(project_id: int, category_id: int, activity_id: int) -> ProjectCategoryActivity:
    _get_category(project_id, category_id)
    return get_scoped(ProjectCategoryActivity, activity_id, project_category_id=category_id)


def _apply_activity_fields(activity: ProjectCategoryActivity, data: dict) -> None:
    for field in _ACTIVITY_FIELDS:
        if field in data:
            value = data[field]
            setattr(activity, field, value.strip() if isinstance(value, str) else value)
    for field in _ACTIVITY_DATE_FIELDS:
        if field in data:
            raw = data[field]
            parsed = parse_date(raw)
            if raw and parsed is None:
                raise ValidationError(f"{field} must be a date (YYYY-MM-DD)", details={field: raw})
            setattr(activity, field, parsed)
    if activity.date_tentative_start and activity.date_tentative_end:
        if activity.date_tentative_end < activity.date_tentative_start:
            raise ValidationError(
                "date_tentative_end cannot be before date_tentative_start",
                details={"date_tentative_end": activity.date_tentative_end.isoformat()},
            )


# ── Progress ──────────────────────────────────────────────────────────────────


def compute_progress(project_id: int, loader=None) -> progress_engine.ProjectProgress:
    """Recompute the project's derived progress from persisted activities."""
    get_live(Project, project_id)
    loader = loader or default_loader()
    return progress_engine.summarize_project(project_id, loader.load(project_id))


def get_progress(project_id: int) -> dict:
    return compute_progress(project_id).to_dict()


# ── Projects ──────────────────────────────────────────────────────────────────


def create_project(data: dict, actor: str = "system") -> dict:
    title = _require_text(data, "title")
    request_id = data.get("project_request_id")
    if request_id is not None:
        get_live(ProjectRequest, request_id)

    project = Project(
        title=title,
        project_request_id=request_id,
        observations=data.get("observations"),
        created_by=actor,
    )
    db.session.add(project)
    commit_or_raise("create project")
    logger.info("Project created", extra={"project_id": project.id, "actor": actor})
    return get_project(project.id)


def get_project(project_id: int) -> dict:
    project = get_live(Project, project_id)
    summary = compute_progress(project_id)
    result = project.to_dict()
    result["progress"] = summary.progress
    result["status_label"] = summary.label
    return result


# ── Categories ────────────────────────────────────────────────────────────────


def list_categories(project_id: int, include_activities: bool = False) -> list[dict]:
    """Live categories ordered by id, each with its derived status/progress."""
    get_live(Project, project_id)
    categories = db.session.execute(
        select(ProjectCategory)
        .where(
            ProjectCategory.project_id == project_id,
            ProjectCategory.is_deleted.is_(False),
        )
        .order_by(ProjectCategory.id)
    ).scalars().all()

    result = []
    for category in categories:
        item = category.to_dict(include_activities=include_activities)
        item["status"] = progress_engine.category_status(category)
        item["progress"] = progress_engine.category_progress(category)
        result.append(item)
    return result


def create_category(project_id: int, data: dict, actor: str = "system") -> dict:
    get_live(Project, project_id)
    name = _require_text(data, "name")
    _assert_unique_category_name(project_id, name)

    category = ProjectCategory(
        project_id=project_id,
        name=name,
        description=data.get("description"),
        created_by=actor,
    )
    db.session.add(category)
    commit_or_raise("create category")
    logger.info(
        "Category created",
        extra={"project_id": project_id, "category_id": category.id, "actor": actor},
    )
    return category.to_dict()


def update_category(project_id: int, category_id: int, data: dict) -> dict:
    category = _get_category(project_id, category_id)
    if "name" in data:
        name = _require_text(data, "name")
        _assert_unique_category_name(project_id, name, exclude_id=category_id)
        category.name = name
    if "description" in data:
        category.description = data["description"]
    commit_or_raise("update category")
    return category.to_dict()


def delete_category(project_id: int, category_id: int) -> dict:
    category = _get_category(project_id, category_id)
    category.soft_delete()
    commit_or_raise("delete category")
    logger.info(
        "Category soft-deleted",
        extra={"project_id": project_id, "category_id": category_id},
    )
    return {"deleted": True, "id": category_id, "project_progress": get_progress(project_id)}


# ── Activities ────────────────────────────────────────────────────────────────


def list_activities(project_id: int, category_id: int) -> list[dict]:
    category = _get_category(project_id, category_id)
    return [a.to_dict() for a in category.activities if not a.is_deleted]


def create_activity(project_id: int, category_id: int, data: dict, actor: str = "system") -> dict:
    _get_category(project_id, category_id)
    _require_text(data, "name")
    status_id = ACTIVITY_NOT_STARTED
    if data.get("status_id") is not None:
        status_id = _validate_status_id(data["status_id"])

    activity = ProjectCategoryActivity(
        project_category_id=category_id,
        status_id=status_id,
        created_by=actor,
    )
    _apply_activity_fields(activity, data)
    db.session.add(activity)
    commit_or_raise("create activity")
    logger.info(
        "Activity created",
        extra={"project_id": project_id, "category_id": category_id, "activity_id": activity.id},
    )
    return activity.to_dict()


def update_activity(project_id: int, category_id: int, activity_id: int, data: dict) -> dict:
    activity = _get_activity(project_id, category_id, activity_id)
    if "name" in data:
        _require_text(data, "name")
    _apply_activity_fields(activity, data)
    if data.get("status_id") is not None:
        activity.status_id = _validate_status_id(data["status_id"])
    commit_or_raise("update activity")
    return activity.to_dict()


def delete_activity(project_id: int, category_id: int, activity_id: int) -> dict:
    activity = _get_activity(project_id, category_id, activity_id)
    activity.soft_delete()
    commit_or_raise("delete activity")
    logger.info(
        "Activity soft-deleted",
        extra={"project_id": project_id, "category_id": category_id, "activity_id": activity_id},
    )
    return {"deleted": True, "id": activity_id, "project_progress": get_progress(project_id)}


def update_activity_status(project_id: int, category_id: int, activity_id: int, status_id) -> dict:
    """Persist a kanban move and return the recomputed category/project progress.

    Returns:
        {"activity": {...}, "category": {id, status, progress, …},
         "project": {project_id, progress, label, …}}
    """
    status_id = _validate_status_id(status_id)
    activity = _get_activity(project_id, category_id, activity_id)
    previous = activity.status_id
    activity.status_id = status_id
    commit_or_raise("update activity status")

    summary = compute_progress(project_id)
    category_summary = summary.category(category_id)
    if category_summary is None:
        raise NotFoundError(resource="ProjectCategory", resource_id=category_id)

    logger.info(
        "Activity status moved %s → %s", previous, status_id,
        extra={
            "project_id": project_id,
            "category_id": category_id,
            "activity_id": activity_id,
            "event_type": "activity.status_changed",
        },
    )
    return {
        "activity": activity.to_dict(),
        "category": category_summary.to_dict(),
        "project": summary.to_dict(),
    }
