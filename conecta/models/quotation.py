"""
Conecta Tool
Quotation domain — company quotations per requirement and the consolidated
client quotation per project request.

Models:
    - CompanyQuotation:  priced offer of one participant (1:1 with
                         RequirementParticipant). ``is_client_approved`` is
                         NULL until the operator decides.
    - QuotationSegment:  delivery milestone of a company quotation.
    - ClientQuotation:   the single active quotation sent to the client;
                         the uploaded file is stored as bytes.

Money columns are Numeric(14, 2) and surface as ``Decimal``.
"""

from datetime import datetime, timezone

from conecta.models import db
from conecta.utils.money import money_str, to_decimal


class CompanyQuotation(db.Model):
    __tablename__ = "requirement_quotations"

    id = db.Column(db.Integer, primary_key=True)
    participant_id = db.Column(
        db.Integer,
        db.ForeignKey("project_request_companies.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    material_cost = db.Column(db.Numeric(14, 2), nullable=True)
    direct_cost = db.Column(db.Numeric(14, 2), nullable=True)
    indirect_cost = db.Column(db.Numeric(14, 2), nullable=True)
    price = db.Column(db.Numeric(14, 2), nullable=True)
    additional_details = db.Column(db.Text, nullable=True)

    is_client_selected = db.Column(
        db.Boolean, nullable=False, default=False,
        comment="Legacy selection flag; synced to is_client_approved on client quotation save",
    )
    is_client_approved = db.Column(
        db.Boolean, nullable=True, default=None,
        comment="NULL = undecided | true = approved | false = rejected",
    )
    non_approval_reason = db.Column(db.Text, nullable=True)

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

    segments = db.relationship(
        "QuotationSegment", backref="quotation", lazy="select",
        order_by="QuotationSegment.estimated_delivery_date",
        cascade="all, delete-orphan",
    )

    @property
    def total_cost(self):
        return (
            to_decimal(self.material_cost)
            + to_decimal(self.direct_cost)
            + to_decimal(self.indirect_cost)
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "participant_id": self.participant_id,
            "material_cost": money_str(self.material_cost),
            "direct_cost": money_str(self.direct_cost),
            "indirect_cost": money_str(self.indirect_cost),
            "price": money_str(self.price),
            "total_cost": money_str(self.total_cost),
            "additional_details": self.additional_details,
            "is_client_selected": self.is_client_selected,
            "is_client_approved": self.is_client_approved,
            "non_approval_reason": self.non_approval_reason,
            "segments": [s.to_dict() for s in self.segments],
        }

    def __repr__(self) -> str:
        return f"<CompanyQuotation {self.id}: participant={self.participant_id}>"


class QuotationSegment(db.Model):
    __tablename__ = "quotation_segments"

    id = db.Column(db.Integer, primary_key=True)
    quotation_id = db.Column(
        db.Integer,
        db.ForeignKey("requirement_quotations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    estimated_delivery_date = db.Column(db.Date, nullable=False)
    description = db.Column(db.Text, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "estimated_delivery_date": (
                self.estimated_delivery_date.isoformat()
                if self.estimated_delivery_date else None
            ),
            "description": self.description,
        }


class ClientQuotation(db.Model):
    __tablename__ = "client_quotations"
    __table_args__ = (
        db.CheckConstraint("client_price > 0", name="ck_client_quotation_price_positive"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_request_id = db.Column(
        db.Integer,
        db.ForeignKey("project_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    quotation_file_name = db.Column(db.String(255), nullable=True)
    quotation_file = db.Column(db.LargeBinary, nullable=True)
    client_price = db.Column(db.Numeric(14, 2), nullable=False)
    observations = db.Column(db.Text, nullable=True)
    date_quotation_client = db.Column(db.Date, nullable=False)
    date_quotation_sent = db.Column(db.Date, nullable=True)
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

    @property
    def has_file(self) -> bool:
        return bool(self.quotation_file)

    def to_dict(self) -> dict:
        """Serialise without the file bytes."""
        return {
            "id": self.id,
            "project_request_id": self.project_request_id,
            "quotation_file_name": self.quotation_file_name,
            "has_file": self.has_file,
            "client_price": money_str(self.client_price),
            "observations": self.observations,
            "date_quotation_client": (
                self.date_quotation_client.isoformat()
                if self.date_quotation_client else None
            ),
            "date_quotation_sent": (
                self.date_quotation_sent.isoformat()
                if self.date_quotation_sent else None
            ),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self) -> str:
        return f"<ClientQuotation {self.id}: request={self.project_request_id}>"
