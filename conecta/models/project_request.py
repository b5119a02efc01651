"""
Conecta Tool
Project request domain — ProjectRequest → ProjectRequirement → RequirementParticipant.

Models:
    - ProjectRequest:        a client's request for work, split into requirements.
    - ProjectRequirement:    one technical requirement of a request.
    - RequirementParticipant: associate company assigned to a requirement.
                             Its id doubles as the quotation id used by the
                             approval workflow.
    - ProjectRequestLog:     append-only workflow log, written with flush()
                             inside the caller's transaction.
"""

from datetime import datetime, timezone

from conecta.models import db
from conecta.models.soft_delete import SoftDeleteMixin

# ── Constants ────────────────────────────────────────────────────────────────

REQUEST_STATUS_NEW = 1
REQUEST_STATUS_CLIENT_QUOTATION = 10

REQUEST_STATUS_NAMES = {
    REQUEST_STATUS_NEW: "Nueva solicitud",
    REQUEST_STATUS_CLIENT_QUOTATION: "Cotización generada para Cliente",
}

PARTICIPANT_STATUS_ASSIGNED = 1
PARTICIPANT_STATUS_QUOTED = 2

PARTICIPANT_STATUS_NAMES = {
    PARTICIPANT_STATUS_ASSIGNED: "Asignado",
    PARTICIPANT_STATUS_QUOTED: "Cotización recibida",
}

LOG_QUOTATION_APPROVED = "REQUIREMENT_QUOTATION_APPROVED"
LOG_QUOTATION_REJECTED = "REQUIREMENT_QUOTATION_REJECTED"
LOG_CLIENT_QUOTATION_SAVED = "CLIENT_QUOTATION_SAVED"
LOG_COMPANY_QUOTATION_SAVED = "COMPANY_QUOTATION_SAVED"

LOG_EVENT_TYPES = {
    LOG_QUOTATION_APPROVED,
    LOG_QUOTATION_REJECTED,
    LOG_CLIENT_QUOTATION_SAVED,
    LOG_COMPANY_QUOTATION_SAVED,
}


requirement_certifications = db.Table(
    "requirement_certifications",
    db.Column(
        "requirement_id",
        db.Integer,
        db.ForeignKey("project_requirements.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "certification_id",
        db.Integer,
        db.ForeignKey("certifications.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class ProjectRequest(SoftDeleteMixin, db.Model):
    __tablename__ = "project_requests"

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(
        db.Integer,
        db.ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    title = db.Column(db.String(250), nullable=False)
    status_id = db.Column(
        db.Integer, nullable=False, default=REQUEST_STATUS_NEW,
        comment="1 Nueva solicitud | … | 10 Cotización generada para Cliente",
    )
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

    client = db.relationship("Client", lazy="joined")
    requirements = db.relationship(
        "ProjectRequirement", backref="project_request", lazy="dynamic",
        order_by="ProjectRequirement.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "client_name": self.client.name if self.client else None,
            "title": self.title,
            "status_id": self.status_id,
            "status_name": REQUEST_STATUS_NAMES.get(self.status_id),
            "observations": self.observations,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<ProjectRequest {self.id}: {self.title[:30]}>"


class ProjectRequirement(SoftDeleteMixin, db.Model):
    __tablename__ = "project_requirements"

    id = db.Column(db.Integer, primary_key=True)
    project_request_id = db.Column(
        db.Integer,
        db.ForeignKey("project_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requirement_name = db.Column(db.String(250), nullable=False)
    description = db.Column(db.Text, nullable=True)
    specialty_id = db.Column(
        db.Integer, db.ForeignKey("specialties.id", ondelete="SET NULL"), nullable=True,
    )
    scope_id = db.Column(
        db.Integer, db.ForeignKey("scopes.id", ondelete="SET NULL"), nullable=True,
    )
    subscope_id = db.Column(
        db.Integer, db.ForeignKey("subscopes.id", ondelete="SET NULL"), nullable=True,
    )
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    certifications = db.relationship(
        "Certification", secondary=requirement_certifications, lazy="select",
    )
    participants = db.relationship(
        "RequirementParticipant", backref="requirement", lazy="select",
        order_by="RequirementParticipant.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_request_id": self.project_request_id,
            "requirement_name": self.requirement_name,
            "description": self.description,
            "specialty_id": self.specialty_id,
            "scope_id": self.scope_id,
            "subscope_id": self.subscope_id,
            "certification_ids": [c.id for c in self.certifications],
        }

    def __repr__(self) -> str:
        return f"<ProjectRequirement {self.id}: {self.requirement_name[:30]}>"


class RequirementParticipant(SoftDeleteMixin, db.Model):
    """An associate company competing for one requirement."""

    __tablename__ = "project_request_companies"
    __table_args__ = (
        db.UniqueConstraint(
            "requirement_id", "company_id", name="uq_participant_requirement_company",
        ),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_request_id = db.Column(
        db.Integer,
        db.ForeignKey("project_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requirement_id = db.Column(
        db.Integer,
        db.ForeignKey("project_requirements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    company_id = db.Column(
        db.Integer,
        db.ForeignKey("companies.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    status_id = db.Column(
        db.Integer, nullable=False, default=PARTICIPANT_STATUS_ASSIGNED,
        comment="1 Asignado | 2 Cotización recibida",
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    company = db.relationship("Company", lazy="joined")
    quotation = db.relationship(
        "CompanyQuotation", backref="participant", uselist=False, lazy="select",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_request_id": self.project_request_id,
            "requirement_id": self.requirement_id,
            "company_id": self.company_id,
            "company_name": self.company.comercial_name if self.company else None,
            "status_id": self.status_id,
            "status_name": PARTICIPANT_STATUS_NAMES.get(self.status_id),
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<RequirementParticipant {self.id}: company={self.company_id}>"


class ProjectRequestLog(db.Model):
    """Immutable workflow event for a project request."""

    __tablename__ = "project_request_logs"
    __table_args__ = (
        db.Index("idx_request_log_request", "project_request_id"),
        db.Index("idx_request_log_event", "event_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_request_id = db.Column(
        db.Integer,
        db.ForeignKey("project_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type = db.Column(
        db.String(60), nullable=False,
        comment="REQUIREMENT_QUOTATION_APPROVED | … | CLIENT_QUOTATION_SAVED",
    )
    message = db.Column(db.Text, nullable=False)
    actor = db.Column(db.String(150), nullable=False, default="system")
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_request_id": self.project_request_id,
            "event_type": self.event_type,
            "message": self.message,
            "actor": self.actor,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<ProjectRequestLog {self.id}: {self.event_type}>"


# ── Convenience writer ───────────────────────────────────────────────────────

def write_request_log(
    *,
    project_request_id: int,
    event_type: str,
    message: str,
    actor: str = "system",
) -> ProjectRequestLog:
    """
    Append a single workflow log row.  Uses ``flush`` so callers keep
    transaction control.
    """
    if event_type not in LOG_EVENT_TYPES:
        raise ValueError(f"Unknown log event type: {event_type}")
    log = ProjectRequestLog(
        project_request_id=project_request_id,
        event_type=event_type,
        message=message,
        actor=actor,
    )
    db.session.add(log)
    db.session.flush()
    return log
