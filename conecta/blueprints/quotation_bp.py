"""
Quotation approval blueprint — decisions on company quotations and the
quotation sent to the client.

Routes (prefix /api/v1/project_requests/<id>):
  GET  /quotations                  – requirements with nested quotations
  POST /quotation-approvals         – bulk decisions { updates: [...] }
  GET  /client-quotation            – stored quotation + approved companies
  POST /client-quotation            – create/update (multipart: file,
                                      client_price, date_quotation_client,
                                      observations)
  POST /client-quotation/submit     – engine checks → decisions → quotation
                                      (multipart, plus a JSON "decisions" field)
  GET  /client-quotation/download   – stored file
"""

import json
import logging
from io import BytesIO

from flask import Blueprint, jsonify, request, send_file

from conecta.blueprints import json_body, missing_body, register_service_errors
from conecta.services import quotation_service
from conecta.utils.errors import E, api_error
from conecta.utils.helpers import current_user

logger = logging.getLogger(__name__)

quotation_bp = Blueprint("quotation", __name__, url_prefix="/api/v1/project_requests")
register_service_errors(quotation_bp)


def _uploaded_file():
    """(file_name, bytes) of the multipart ``file`` field, or (None, None)."""
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return None, None
    content = upload.read()
    if not content:
        return None, None
    return upload.filename, content


@quotation_bp.route("/<int:request_id>/quotations", methods=["GET"])
def list_quotations(request_id):
    return jsonify(quotation_service.list_requirements_with_quotations(request_id))


@quotation_bp.route("/<int:request_id>/quotation-approvals", methods=["POST"])
def save_approvals(request_id):
    """Body: { updates: [{quotation_id, is_approved, rejection_reason}] }"""
    data = json_body()
    if data is None:
        return missing_body()
    if "updates" not in data:
        return api_error(E.VALIDATION_REQUIRED, "updates is required")
    result = quotation_service.save_approval_decisions(
        request_id, data["updates"], actor=current_user(),
    )
    return jsonify(result)


@quotation_bp.route("/<int:request_id>/client-quotation", methods=["GET"])
def get_client_quotation(request_id):
    return jsonify(quotation_service.get_client_quotation(request_id))


@quotation_bp.route("/<int:request_id>/client-quotation", methods=["POST"])
def save_client_quotation(request_id):
    form = request.form
    if not form.get("client_price"):
        return api_error(E.VALIDATION_REQUIRED, "client_price is required")
    file_name, content = _uploaded_file()
    result = quotation_service.save_client_quotation(
        request_id,
        client_price=form.get("client_price"),
        file_name=file_name,
        file_content=content,
        quotation_date=form.get("date_quotation_client"),
        observations=form.get("observations"),
        actor=current_user(),
    )
    status = 201 if result["created"] else 200
    return jsonify(result), status


@quotation_bp.route("/<int:request_id>/client-quotation/submit", methods=["POST"])
def submit_client_quotation(request_id):
    form = request.form
    raw_decisions = form.get("decisions")
    decisions = []
    if raw_decisions:
        try:
            decisions = json.loads(raw_decisions)
        except ValueError:
            return api_error(E.VALIDATION_INVALID, "decisions must be a JSON array")
    file_name, content = _uploaded_file()
    result = quotation_service.submit_client_quotation(
        request_id,
        decisions=decisions,
        client_price=form.get("client_price", ""),
        file_name=file_name,
        file_content=content,
        observations=form.get("observations"),
        actor=current_user(),
    )
    status = 201 if result["created"] else 200
    return jsonify(result), status


@quotation_bp.route("/<int:request_id>/client-quotation/download", methods=["GET"])
def download_client_quotation(request_id):
    content, file_name = quotation_service.get_client_quotation_file(request_id)
    logger.info("Client quotation downloaded", extra={"project_request_id": request_id})
    return send_file(
        BytesIO(content),
        as_attachment=True,
        download_name=file_name,
        mimetype="application/octet-stream",
    )
