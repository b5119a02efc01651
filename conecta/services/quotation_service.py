"""
Quotation persistence service — approval decisions and the client quotation.

Business rules enforced here (not in blueprints):
    - Bulk approval decisions are all-or-nothing: every row is validated
      (exists, belongs to the request, boolean decision, reason when
      rejected) before anything is written; one commit for the batch and
      one log row per decision inside the same transaction.
    - Approved quotations persist ``non_approval_reason = NULL``.
    - A client quotation needs a file on creation; on update an omitted
      file keeps the stored one.  ``client_price`` must be > 0.
    - Saving the client quotation syncs ``is_client_selected`` to the
      approval decisions and moves the request to status 10
      ("Cotización generada para Cliente").
    - ``submit_client_quotation`` runs the engine checks first, then the
      decision batch, then the client quotation; a failed batch means the
      client quotation is never written.
"""

import logging
from datetime import date

from sqlalchemy import select

from conecta.core.exceptions import NotFoundError, ValidationError
from conecta.models import db
from conecta.models.project_request import (
    LOG_CLIENT_QUOTATION_SAVED,
    LOG_QUOTATION_APPROVED,
    LOG_QUOTATION_REJECTED,
    REQUEST_STATUS_CLIENT_QUOTATION,
    ProjectRequest,
    ProjectRequirement,
    RequirementParticipant,
    write_request_log,
)
from conecta.models.quotation import ClientQuotation, CompanyQuotation
from conecta.services import quotation_engine as engine
from conecta.services.helpers.scoped_queries import commit_or_raise, get_live
from conecta.utils.helpers import parse_bool, parse_date, parse_int
from conecta.utils.money import format_currency, parse_money

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────────


def _participants_with_quotations(request_id: int) -> list[RequirementParticipant]:
    stmt = (
        select(RequirementParticipant)
        .join(CompanyQuotation, CompanyQuotation.participant_id == RequirementParticipant.id)
        .join(ProjectRequirement, ProjectRequirement.id == RequirementParticipant.requirement_id)
        .where(
            RequirementParticipant.project_request_id == request_id,
            RequirementParticipant.is_deleted.is_(False),
            RequirementParticipant.is_active.is_(True),
            ProjectRequirement.is_deleted.is_(False),
        )
        .order_by(RequirementParticipant.requirement_id, RequirementParticipant.id)
    )
    return db.session.execute(stmt).scalars().all()


def _quotation_dict(participant: RequirementParticipant) -> dict:
    quotation = participant.quotation
    result = quotation.to_dict()
    result.update({
        "id": participant.id,
        "quotation_record_id": quotation.id,
        "company_id": participant.company_id,
        "company_name": participant.company.comercial_name if participant.company else None,
        "requirement_id": participant.requirement_id,
        "requirement_name": participant.requirement.requirement_name,
        "status_id": participant.status_id,
    })
    return result


def _active_client_quotation(request_id: int) -> ClientQuotation | None:
    return db.session.execute(
        select(ClientQuotation)
        .where(
            ClientQuotation.project_request_id == request_id,
            ClientQuotation.is_active.is_(True),
        )
        .order_by(ClientQuotation.id.desc())
    ).scalars().first()


def _requirement_lines(request_id: int) -> list:
    return engine.requirements_from_json(list_requirements_with_quotations(request_id))


def _parse_decision_rows(
    decisions, require_reason: bool = True,
) -> tuple[list[dict], list[dict]]:
    """Structural validation of decision rows.  Returns (rows, errors).

    With ``require_reason=False`` a blank rejection reason is left for the
    engine check so it surfaces as ``missing_rejection_reason``.
    """
    if not isinstance(decisions, list) or not decisions:
        raise ValidationError(
            "updates must be a non-empty list of decisions",
            details={"updates": "required"},
        )
    rows, errors, seen = [], [], set()
    for raw in decisions:
        if not isinstance(raw, dict):
            errors.append({"quotation_id": None, "error": "Formato de decisión inválido"})
            continue
        quotation_id = parse_int(raw.get("quotation_id"))
        if quotation_id is None:
            errors.append({"quotation_id": raw.get("quotation_id"), "error": "ID de cotización requerido"})
            continue
        if quotation_id in seen:
            errors.append({"quotation_id": quotation_id, "error": "Cotización duplicada en el lote"})
            continue
        seen.add(quotation_id)
        is_approved = parse_bool(raw.get("is_approved"))
        if is_approved is None:
            errors.append({"quotation_id": quotation_id, "error": "Estado de aprobación requerido"})
            continue
        reason = (raw.get("rejection_reason") or "").strip()
        if require_reason and not is_approved and not reason:
            errors.append({"quotation_id": quotation_id, "error": "Motivo de rechazo requerido"})
            continue
        rows.append({
            "quotation_id": quotation_id,
            "is_approved": is_approved,
            "rejection_reason": None if is_approved else reason,
        })
    return rows, errors


# ── Read side ─────────────────────────────────────────────────────────────────


def list_requirements_with_quotations(request_id: int) -> list[dict]:
    """Requirements of the request that have at least one quotation, with
    their quotations nested (costs, price, total_cost, approval, segments)."""
    get_live(ProjectRequest, request_id)
    grouped: dict[int, dict] = {}
    for participant in _participants_with_quotations(request_id):
        requirement = participant.requirement
        entry = grouped.setdefault(requirement.id, {
            "id": requirement.id,
            "requirement_name": requirement.requirement_name,
            "description": requirement.description,
            "quotations": [],
        })
        entry["quotations"].append(_quotation_dict(participant))
    return list(grouped.values())


def get_client_quotation(request_id: int) -> dict:
    """Stored client quotation (no bytes) plus the companies whose
    quotations are approved."""
    get_live(ProjectRequest, request_id)
    quotation = _active_client_quotation(request_id)
    selected = []
    for participant in _participants_with_quotations(request_id):
        if participant.quotation.is_client_approved is not True:
            continue
        amounts = participant.quotation.to_dict()
        selected.append({
            "id": participant.id,
            "company_id": participant.company_id,
            "company_name": (
                participant.company.comercial_name if participant.company else "Empresa sin nombre"
            ),
            "material_cost": amounts["material_cost"],
            "direct_cost": amounts["direct_cost"],
            "indirect_cost": amounts["indirect_cost"],
            "price": amounts["price"],
        })
    return {
        "quotation": quotation.to_dict() if quotation else None,
        "selected_companies": selected,
        "selected_company_ids": [s["id"] for s in selected],
    }


def get_client_quotation_file(request_id: int) -> tuple[bytes, str]:
    get_live(ProjectRequest, request_id)
    quotation = _active_client_quotation(request_id)
    if quotation is None or not quotation.has_file:
        raise NotFoundError(resource="ClientQuotationFile", resource_id=request_id)
    return quotation.quotation_file, quotation.quotation_file_name or f"cotizacion_{request_id}.pdf"


# ── Approval decisions ────────────────────────────────────────────────────────


def save_approval_decisions(request_id: int, decisions, actor: str = "system") -> dict:
    """Validate every decision, then write them all in one transaction.

    Raises:
        NotFoundError: request does not exist.
        ValidationError: any row is invalid; ``details["errors"]`` lists
                         ``{quotation_id, error}`` and nothing was written.
    """
    get_live(ProjectRequest, request_id)
    rows, errors = _parse_decision_rows(decisions)

    participants = {}
    for row in rows:
        participant = db.session.get(RequirementParticipant, row["quotation_id"])
        if participant is None or participant.is_deleted or participant.quotation is None:
            errors.append({"quotation_id": row["quotation_id"], "error": "No se encontró la cotización"})
            continue
        if participant.project_request_id != request_id:
            errors.append({
                "quotation_id": row["quotation_id"],
                "error": "La cotización no pertenece a este proyecto",
            })
            continue
        participants[row["quotation_id"]] = participant

    if errors:
        logger.warning(
            "Approval batch rejected: %d invalid decision(s)", len(errors),
            extra={"project_request_id": request_id, "count": len(errors)},
        )
        raise ValidationError(
            "Decisiones de aprobación inválidas; no se guardó ningún cambio",
            details={"errors": errors},
        )

    results = []
    for row in rows:
        participant = participants[row["quotation_id"]]
        quotation = participant.quotation
        quotation.is_client_approved = row["is_approved"]
        quotation.non_approval_reason = row["rejection_reason"]

        requirement_name = participant.requirement.requirement_name
        company_name = participant.company.comercial_name if participant.company else ""
        if row["is_approved"]:
            event_type = LOG_QUOTATION_APPROVED
            message = (
                f'Cotización aprobada para el requerimiento "{requirement_name}" '
                f'del asociado "{company_name}"'
            )
        else:
            event_type = LOG_QUOTATION_REJECTED
            message = (
                f'Cotización no seleccionada para el requerimiento "{requirement_name}" '
                f'del asociado "{company_name}". Motivo: {row["rejection_reason"]}'
            )
        write_request_log(
            project_request_id=request_id, event_type=event_type, message=message, actor=actor,
        )
        results.append({
            "quotation_id": row["quotation_id"],
            "is_approved": row["is_approved"],
            "success": True,
        })

    commit_or_raise("save approval decisions")
    logger.info(
        "Approval decisions persisted",
        extra={
            "project_request_id": request_id,
            "count": len(results),
            "actor": actor,
            "event_type": "quotation.decisions_saved",
        },
    )
    return {"success": True, "updated": len(results), "results": results}


# ── Client quotation ──────────────────────────────────────────────────────────


def save_client_quotation(
    request_id: int,
    *,
    client_price,
    file_name: str | None = None,
    file_content: bytes | None = None,
    quotation_date=None,
    observations: str | None = None,
    actor: str = "system",
) -> dict:
    """Create or update the request's client quotation.

    Returns:
        {"quotation": {...}, "created": bool, "message": str}
    """
    project_request = get_live(ProjectRequest, request_id)

    price = parse_money(client_price)
    if price is None or price <= 0:
        raise ValidationError(
            engine.CHECK_MESSAGES[engine.INVALID_CLIENT_PRICE],
            details={"client_price": client_price},
            code=engine.INVALID_CLIENT_PRICE,
        )

    quotation_day = date.today()
    if quotation_date:
        quotation_day = parse_date(quotation_date)
        if quotation_day is None:
            raise ValidationError(
                "date_quotation_client must be a date (YYYY-MM-DD)",
                details={"date_quotation_client": quotation_date},
            )

    quotation = _active_client_quotation(request_id)
    created = quotation is None
    if created and not file_content:
        raise ValidationError(
            engine.CHECK_MESSAGES[engine.MISSING_FILE],
            details={"file": "required"},
            code=engine.MISSING_FILE,
        )

    if created:
        quotation = ClientQuotation(project_request_id=request_id, created_by=actor)
        db.session.add(quotation)
    quotation.client_price = price
    quotation.date_quotation_client = quotation_day
    quotation.observations = observations
    if file_content:
        quotation.quotation_file = file_content
        quotation.quotation_file_name = file_name or f"cotizacion_{request_id}.pdf"

    for participant in _participants_with_quotations(request_id):
        participant.quotation.is_client_selected = participant.quotation.is_client_approved is True

    project_request.status_id = REQUEST_STATUS_CLIENT_QUOTATION
    write_request_log(
        project_request_id=request_id,
        event_type=LOG_CLIENT_QUOTATION_SAVED,
        message=(
            f"Cotización para cliente {'creada' if created else 'actualizada'} "
            f"por {format_currency(price)}"
        ),
        actor=actor,
    )
    commit_or_raise("save client quotation")

    logger.info(
        "Client quotation saved",
        extra={
            "project_request_id": request_id,
            "actor": actor,
            "event_type": "quotation.client_saved",
        },
    )
    return {
        "quotation": quotation.to_dict(),
        "created": created,
        "message": "Cotización para cliente guardada correctamente",
    }


def submit_client_quotation(
    request_id: int,
    *,
    decisions,
    client_price,
    file_name: str | None = None,
    file_content: bytes | None = None,
    observations: str | None = None,
    actor: str = "system",
) -> dict:
    """Validate with the approval engine, persist decisions, then the quotation.

    ``decisions`` overlays the persisted approval state; quotations it does
    not mention keep their stored decision.

    Raises:
        ValidationError: engine check failed (``code`` is the check name) or
                         a decision row is invalid.  Nothing was written.
    """
    lines = _requirement_lines(request_id)
    known_ids = {q.id for q in engine.iter_quotations(lines)}

    rows, errors = (
        _parse_decision_rows(decisions, require_reason=False) if decisions else ([], [])
    )
    errors.extend(
        {"quotation_id": row["quotation_id"], "error": "No se encontró la cotización"}
        for row in rows if row["quotation_id"] not in known_ids
    )
    if errors:
        raise ValidationError(
            "Decisiones de aprobación inválidas; no se guardó ningún cambio",
            details={"errors": errors},
        )

    state = engine.ApprovalState.from_quotations(lines)
    for row in rows:
        state = state.set_approval(row["quotation_id"], row["is_approved"])
        state = state.set_rejection_reason(row["quotation_id"], row["rejection_reason"] or "")

    existing = _active_client_quotation(request_id)
    check = engine.validate_before_submit(
        lines, state, client_price,
        has_existing_file=bool(existing and existing.has_file),
        new_file=file_content,
    )
    if not check.ok:
        raise ValidationError(
            check.message,
            details={"quotation_ids": list(check.quotation_ids)} if check.quotation_ids else None,
            code=check.code,
        )

    decision_result = save_approval_decisions(
        request_id, engine.decisions_payload(lines, state), actor=actor,
    )
    saved = save_client_quotation(
        request_id,
        client_price=f"{check.client_price:.2f}",
        file_name=file_name,
        file_content=file_content,
        observations=observations,
        actor=actor,
    )
    saved["decisions"] = decision_result
    return saved
