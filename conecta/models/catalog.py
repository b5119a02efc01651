"""
Conecta Tool
Catalog models — Specialty → Scope → Subscope, and Certification.

Catalog rows are never deleted from the UI: ``is_active`` is toggled
instead so historical requirements keep their references.
"""

from datetime import datetime, timezone

from conecta.models import db
from conecta.models.soft_delete import SoftDeleteMixin


class _CatalogColumns(SoftDeleteMixin):
    """Columns and serialisation shared by every catalog table."""

    id = db.Column(db.Integer, primary_key=True)
    num = db.Column(db.Integer, nullable=True, comment="Display order")
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
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

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "num": self.num,
            "name": self.name,
            "description": self.description,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}: {self.name[:30]}>"


class Specialty(_CatalogColumns, db.Model):
    __tablename__ = "specialties"

    scopes = db.relationship("Scope", backref="specialty", lazy="dynamic")


class Scope(_CatalogColumns, db.Model):
    __tablename__ = "scopes"

    specialty_id = db.Column(
        db.Integer,
        db.ForeignKey("specialties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subscopes = db.relationship("Subscope", backref="scope", lazy="dynamic")

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["specialty_id"] = self.specialty_id
        return result


class Subscope(_CatalogColumns, db.Model):
    __tablename__ = "subscopes"

    scope_id = db.Column(
        db.Integer,
        db.ForeignKey("scopes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["scope_id"] = self.scope_id
        return result


class Certification(_CatalogColumns, db.Model):
    __tablename__ = "certifications"
