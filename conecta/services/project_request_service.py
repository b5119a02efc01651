"""
Project request service — requests, requirements, participant companies,
their quotations, and the workflow log.

Business rules enforced here (not in blueprints):
    - A requirement's specialty/scope/subscope must exist and be active,
      and the scope/subscope must hang from the given parent.
    - A company participates at most once per requirement (409).
    - A company quotation is upserted per participant; saving it replaces
      the delivery segments and resets any previous approval decision so
      the operator decides on the new figures.
    - Amounts must be non-negative numbers; missing costs stay NULL.
"""

import logging

from sqlalchemy import select

from conecta.core.exceptions import ConflictError, ValidationError
from conecta.models import db
from conecta.models.catalog import Certification, Scope, Specialty, Subscope
from conecta.models.directory import Client, Company
from conecta.models.project_request import (
    LOG_COMPANY_QUOTATION_SAVED,
    PARTICIPANT_STATUS_QUOTED,
    ProjectRequest,
    ProjectRequestLog,
    ProjectRequirement,
    RequirementParticipant,
    write_request_log,
)
from conecta.models.quotation import CompanyQuotation, QuotationSegment
from conecta.services.helpers.scoped_queries import commit_or_raise, get_live, get_scoped
from conecta.utils.helpers import parse_date, parse_int
from conecta.utils.money import format_currency, to_decimal

logger = logging.getLogger(__name__)

_AMOUNT_FIELDS = ("material_cost", "direct_cost", "indirect_cost", "price")


def _require_text(data: dict, field: str) -> str:
    value = (data.get(field) or "").strip()
    if not value:
        raise ValidationError(f"{field} is required", details={field: "required"})
    return value


def _require_id(data: dict, field: str) -> int:
    value = parse_int(data.get(field))
    if value is None:
        raise ValidationError(f"{field} must be an integer", details={field: data.get(field)})
    return value


def _amount(data: dict, field: str):
    raw = data.get(field)
    if raw is None or raw == "":
        return None
    try:
        value = to_decimal(raw)
    except ValueError:
        raise ValidationError(f"{field} must be a number", details={field: raw}) from None
    if value < 0:
        raise ValidationError(f"{field} cannot be negative", details={field: raw})
    return value


def _active_catalog(model, pk, **parent):
    row = db.session.get(model, pk)
    if row is None or row.is_deleted or not row.is_active:
        raise ValidationError(
            f"{model.__name__} id={pk} does not exist or is inactive",
            details={model.__tablename__: pk},
        )
    for field, value in parent.items():
        if getattr(row, field) != value:
            raise ValidationError(
                f"{model.__name__} id={pk} does not belong to {field}={value}",
                details={field: value},
            )
    return row


# ── Directory ─────────────────────────────────────────────────────────────────


def create_client(data: dict) -> dict:
    client = Client(name=_require_text(data, "name"), rfc=data.get("rfc"))
    db.session.add(client)
    commit_or_raise("create client")
    return client.to_dict()


def list_clients() -> list[dict]:
    rows = db.session.execute(
        select(Client).where(Client.is_deleted.is_(False)).order_by(Client.name)
    ).scalars().all()
    return [c.to_dict() for c in rows]


def create_company(data: dict) -> dict:
    company = Company(
        comercial_name=_require_text(data, "comercial_name"),
        contact_name=data.get("contact_name"),
        email=data.get("email"),
    )
    db.session.add(company)
    commit_or_raise("create company")
    return company.to_dict()


def list_companies() -> list[dict]:
    rows = db.session.execute(
        select(Company).where(Company.is_deleted.is_(False)).order_by(Company.comercial_name)
    ).scalars().all()
    return [c.to_dict() for c in rows]


# ── Project requests ──────────────────────────────────────────────────────────


def create_request(data: dict, actor: str = "system") -> dict:
    title = _require_text(data, "title")
    client_id = _require_id(data, "client_id")
    get_live(Client, client_id)

    project_request = ProjectRequest(
        title=title,
        client_id=client_id,
        observations=data.get("observations"),
        created_by=actor,
    )
    db.session.add(project_request)
    commit_or_raise("create project request")
    logger.info(
        "Project request created",
        extra={"project_request_id": project_request.id, "actor": actor},
    )
    return project_request.to_dict()


def get_request(request_id: int) -> dict:
    project_request = get_live(ProjectRequest, request_id)
    result = project_request.to_dict()
    result["requirements"] = [
        r.to_dict() for r in project_request.requirements if not r.is_deleted
    ]
    return result


def add_requirement(request_id: int, data: dict) -> dict:
    get_live(ProjectRequest, request_id)
    name = _require_text(data, "requirement_name")

    specialty_id = parse_int(data.get("specialty_id"))
    scope_id = parse_int(data.get("scope_id"))
    subscope_id = parse_int(data.get("subscope_id"))
    if specialty_id is not None:
        _active_catalog(Specialty, specialty_id)
    if scope_id is not None:
        parent = {"specialty_id": specialty_id} if specialty_id is not None else {}
        _active_catalog(Scope, scope_id, **parent)
    if subscope_id is not None:
        parent = {"scope_id": scope_id} if scope_id is not None else {}
        _active_catalog(Subscope, subscope_id, **parent)

    certifications = []
    for cert_id in data.get("certification_ids") or []:
        cid = parse_int(cert_id)
        if cid is None:
            raise ValidationError("certification_ids must be integers", details={"certification_ids": cert_id})
        certifications.append(_active_catalog(Certification, cid))

    requirement = ProjectRequirement(
        project_request_id=request_id,
        requirement_name=name,
        description=data.get("description"),
        specialty_id=specialty_id,
        scope_id=scope_id,
        subscope_id=subscope_id,
    )
    requirement.certifications = certifications
    db.session.add(requirement)
    commit_or_raise("add requirement")
    return requirement.to_dict()


def assign_company(request_id: int, requirement_id: int, data: dict) -> dict:
    get_live(ProjectRequest, request_id)
    get_scoped(ProjectRequirement, requirement_id, project_request_id=request_id)
    company_id = _require_id(data, "company_id")
    company = get_live(Company, company_id)

    existing = db.session.execute(
        select(RequirementParticipant).where(
            RequirementParticipant.requirement_id == requirement_id,
            RequirementParticipant.company_id == company_id,
        )
    ).scalar_one_or_none()
    if existing:
        raise ConflictError(resource="RequirementParticipant", field="company_id", value=str(company_id))

    participant = RequirementParticipant(
        project_request_id=request_id,
        requirement_id=requirement_id,
        company_id=company.id,
    )
    db.session.add(participant)
    commit_or_raise("assign company")
    return participant.to_dict()


def upsert_company_quotation(
    request_id: int, participant_id: int, data: dict, actor: str = "system",
) -> dict:
    """Create or replace the participant's quotation and delivery segments."""
    get_live(ProjectRequest, request_id)
    participant = get_scoped(RequirementParticipant, participant_id, project_request_id=request_id)

    amounts = {field: _amount(data, field) for field in _AMOUNT_FIELDS}

    segments = []
    for raw in data.get("segments") or []:
        delivery = parse_date((raw or {}).get("estimated_delivery_date"))
        description = ((raw or {}).get("description") or "").strip()
        if delivery is None or not description:
            raise ValidationError(
                "Each segment needs estimated_delivery_date and description",
                details={"segments": raw},
            )
        segments.append(QuotationSegment(estimated_delivery_date=delivery, description=description))

    quotation = participant.quotation
    if quotation is None:
        quotation = CompanyQuotation(participant_id=participant.id)
        db.session.add(quotation)
        participant.quotation = quotation
    for field, value in amounts.items():
        setattr(quotation, field, value)
    quotation.additional_details = data.get("additional_details")
    quotation.segments = segments
    quotation.is_client_approved = None
    quotation.non_approval_reason = None
    quotation.is_client_selected = False
    participant.status_id = PARTICIPANT_STATUS_QUOTED

    company_name = participant.company.comercial_name if participant.company else ""
    write_request_log(
        project_request_id=request_id,
        event_type=LOG_COMPANY_QUOTATION_SAVED,
        message=(
            f'Cotización recibida del asociado "{company_name}" para el requerimiento '
            f'"{participant.requirement.requirement_name}" por {format_currency(amounts["price"] or 0)}'
        ),
        actor=actor,
    )
    commit_or_raise("save company quotation")
    logger.info(
        "Company quotation saved",
        extra={"project_request_id": request_id, "quotation_id": participant.id, "actor": actor},
    )
    return quotation.to_dict()


def list_logs(request_id: int) -> list[dict]:
    get_live(ProjectRequest, request_id)
    rows = db.session.execute(
        select(ProjectRequestLog)
        .where(ProjectRequestLog.project_request_id == request_id)
        .order_by(ProjectRequestLog.created_at.desc(), ProjectRequestLog.id.desc())
    ).scalars().all()
    return [r.to_dict() for r in rows]
