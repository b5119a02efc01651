"""
Project request blueprint — requests, requirements, participants, company
quotations, workflow log, and the client/company directory.

Routes (prefix /api/v1):
  GET/POST /clients                                         – client directory
  GET/POST /companies                                       – associate companies
  POST     /project_requests                                – create request
  GET      /project_requests/<id>                           – request + client name
  POST     /project_requests/<id>/requirements              – add requirement
  POST     /project_requests/<id>/requirements/<rid>/participants – assign company
  PUT      /project_requests/<id>/participants/<qid>/quotation     – company quotation
  GET      /project_requests/<id>/logs                      – workflow log
"""

from flask import Blueprint, jsonify

from conecta.blueprints import json_body, missing_body, register_service_errors
from conecta.services import project_request_service
from conecta.utils.helpers import current_user

project_request_bp = Blueprint("project_request", __name__, url_prefix="/api/v1")
register_service_errors(project_request_bp)


# ── Directory ────────────────────────────────────────────────────────────────


@project_request_bp.route("/clients", methods=["GET"])
def list_clients():
    return jsonify(project_request_service.list_clients())


@project_request_bp.route("/clients", methods=["POST"])
def create_client():
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_request_service.create_client(data)), 201


@project_request_bp.route("/companies", methods=["GET"])
def list_companies():
    return jsonify(project_request_service.list_companies())


@project_request_bp.route("/companies", methods=["POST"])
def create_company():
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_request_service.create_company(data)), 201


# ── Project requests ─────────────────────────────────────────────────────────


@project_request_bp.route("/project_requests", methods=["POST"])
def create_request():
    """Body: { title, client_id, observations? }"""
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_request_service.create_request(data, actor=current_user())), 201


@project_request_bp.route("/project_requests/<int:request_id>", methods=["GET"])
def get_request(request_id):
    return jsonify(project_request_service.get_request(request_id))


@project_request_bp.route("/project_requests/<int:request_id>/requirements", methods=["POST"])
def add_requirement(request_id):
    """Body: { requirement_name, description?, specialty_id?, scope_id?,
    subscope_id?, certification_ids?: [] }"""
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_request_service.add_requirement(request_id, data)), 201


@project_request_bp.route(
    "/project_requests/<int:request_id>/requirements/<int:requirement_id>/participants",
    methods=["POST"],
)
def assign_company(request_id, requirement_id):
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_request_service.assign_company(request_id, requirement_id, data)), 201


@project_request_bp.route(
    "/project_requests/<int:request_id>/participants/<int:participant_id>/quotation",
    methods=["PUT"],
)
def upsert_company_quotation(request_id, participant_id):
    """Body: { material_cost, direct_cost, indirect_cost, price,
    additional_details?, segments: [{estimated_delivery_date, description}] }"""
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_request_service.upsert_company_quotation(
        request_id, participant_id, data, actor=current_user(),
    ))


@project_request_bp.route("/project_requests/<int:request_id>/logs", methods=["GET"])
def list_logs(request_id):
    return jsonify(project_request_service.list_logs(request_id))
