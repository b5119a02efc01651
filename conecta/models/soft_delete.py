"""
Soft Delete Mixin.

Rows in Conecta are never physically removed once an operator has seen
them: categories, activities, requirements and participants are flagged
instead, and every progress / quotation query filters on the flag.

Usage:
    class ProjectCategory(SoftDeleteMixin, db.Model):
        ...

    category.soft_delete()
    db.session.commit()

    ProjectCategory.query_active().filter_by(project_id=7).all()
"""

from datetime import datetime, timezone

from conecta.models import db


class SoftDeleteMixin:
    """Adds ``is_deleted`` / ``deleted_at`` and query helpers to a model."""

    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, default=None)

    def soft_delete(self):
        """Flag this row as deleted."""
        self.is_deleted = True
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self):
        """Clear the deleted flag."""
        self.is_deleted = False
        self.deleted_at = None

    @classmethod
    def query_active(cls):
        """Return a query that excludes soft-deleted rows."""
        return cls.query.filter(cls.is_deleted.is_(False))
