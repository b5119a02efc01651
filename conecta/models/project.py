"""
Conecta Tool
Project execution domain — Project → ProjectCategory → ProjectCategoryActivity.

Category and project status/progress are NOT columns: they are derived on
every read from the activities (see ``conecta.services.progress_engine``).

Activity status ids match the kanban columns:
    1 Por iniciar · 2 En progreso · 3 Completada · 4 Cancelada
"""

from datetime import datetime, timezone

from conecta.models import db
from conecta.models.soft_delete import SoftDeleteMixin


# ── Constants ────────────────────────────────────────────────────────────────

ACTIVITY_NOT_STARTED = 1
ACTIVITY_IN_PROGRESS = 2
ACTIVITY_COMPLETED = 3
ACTIVITY_CANCELLED = 4

# status_id → engine key
ACTIVITY_STATUS_KEYS = {
    ACTIVITY_NOT_STARTED: "not_started",
    ACTIVITY_IN_PROGRESS: "in_progress",
    ACTIVITY_COMPLETED: "completed",
    ACTIVITY_CANCELLED: "cancelled",
}
ACTIVITY_STATUS_IDS = {key: sid for sid, key in ACTIVITY_STATUS_KEYS.items()}

ACTIVITY_STATUS_NAMES = {
    ACTIVITY_NOT_STARTED: "Por iniciar",
    ACTIVITY_IN_PROGRESS: "En progreso",
    ACTIVITY_COMPLETED: "Completada",
    ACTIVITY_CANCELLED: "Cancelada",
}


def _iso(value):
    return value.isoformat() if value else None


class Project(SoftDeleteMixin, db.Model):
    """Won work being executed for a project request."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    project_request_id = db.Column(
        db.Integer,
        db.ForeignKey("project_requests.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title = db.Column(db.String(250), nullable=False)
    observations = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(150), nullable=False, default="system")

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    categories = db.relationship(
        "ProjectCategory", backref="project", lazy="dynamic",
        order_by="ProjectCategory.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_request_id": self.project_request_id,
            "title": self.title,
            "observations": self.observations,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<Project {self.id}: {self.title[:30]}>"


class ProjectCategory(SoftDeleteMixin, db.Model):
    """Named grouping of activities (a kanban board) inside a project."""

    __tablename__ = "project_categories"
    __table_args__ = (
        db.Index("ix_project_categories_project_deleted", "project_id", "is_deleted"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(150), nullable=False, default="system")

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    activities = db.relationship(
        "ProjectCategoryActivity", backref="category", lazy="select",
        order_by="ProjectCategoryActivity.id",
    )

    def to_dict(self, include_activities=False) -> dict:
        result = {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_activities:
            result["activities"] = [
                a.to_dict() for a in self.activities if not a.is_deleted
            ]
        return result

    def __repr__(self) -> str:
        return f"<ProjectCategory {self.id}: {self.name[:30]}>"


class ProjectCategoryActivity(SoftDeleteMixin, db.Model):
    """Unit of work inside a category; one card on the kanban board."""

    __tablename__ = "project_category_activities"

    id = db.Column(db.Integer, primary_key=True)
    project_category_id = db.Column(
        db.Integer,
        db.ForeignKey("project_categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(250), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status_id = db.Column(
        db.Integer, nullable=False, default=ACTIVITY_NOT_STARTED,
        comment="1 Por iniciar | 2 En progreso | 3 Completada | 4 Cancelada",
    )
    date_tentative_start = db.Column(db.Date, nullable=True)
    date_tentative_end = db.Column(db.Date, nullable=True)
    assigned_to = db.Column(db.String(150), nullable=True)
    observations = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(150), nullable=False, default="system")

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @property
    def status(self) -> str:
        """Engine status key (``not_started`` … ``cancelled``)."""
        return ACTIVITY_STATUS_KEYS.get(self.status_id, "not_started")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_category_id": self.project_category_id,
            "name": self.name,
            "description": self.description,
            "status_id": self.status_id,
            "status": self.status,
            "status_name": ACTIVITY_STATUS_NAMES.get(self.status_id),
            "date_tentative_start": _iso(self.date_tentative_start),
            "date_tentative_end": _iso(self.date_tentative_end),
            "assigned_to": self.assigned_to,
            "observations": self.observations,
            "is_deleted": self.is_deleted,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<ProjectCategoryActivity {self.id}: {self.status}>"
