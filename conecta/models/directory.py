"""
Conecta Tool
Directory models — the parties a project request is brokered between.

Models:
    - Client:  company requesting work.
    - Company: associate company that quotes and executes requirements.
"""

from datetime import datetime, timezone

from conecta.models import db
from conecta.models.soft_delete import SoftDeleteMixin


class Client(SoftDeleteMixin, db.Model):
    __tablename__ = "clients"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(250), nullable=False)
    rfc = db.Column(db.String(20), nullable=True, comment="Mexican tax id")
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "rfc": self.rfc}

    def __repr__(self) -> str:
        return f"<Client {self.id}: {self.name[:30]}>"


class Company(SoftDeleteMixin, db.Model):
    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    comercial_name = db.Column(db.String(250), nullable=False)
    contact_name = db.Column(db.String(200), nullable=True)
    email = db.Column(db.String(200), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "comercial_name": self.comercial_name,
            "contact_name": self.contact_name,
            "email": self.email,
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<Company {self.id}: {self.comercial_name[:30]}>"
