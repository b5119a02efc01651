"""
Project execution blueprint — projects, categories, kanban activities.

Routes (prefix /api/v1):
  POST   /projects                                              – create project
  GET    /projects/<pid>                                        – project + progress/label
  GET    /projects/<pid>/progress                               – full progress snapshot
  GET    /projects/<pid>/categories[?include_activities=true]   – list categories
  POST   /projects/<pid>/categories                             – create category
  PUT    /projects/<pid>/categories/<cid>                       – update category
  DELETE /projects/<pid>/categories/<cid>                       – soft delete
  GET    /projects/<pid>/categories/<cid>/activities            – list activities
  POST   /projects/<pid>/categories/<cid>/activities            – create activity
  PUT    /projects/<pid>/categories/<cid>/activities/<aid>      – update activity
  DELETE /projects/<pid>/categories/<cid>/activities/<aid>      – soft delete
  PATCH  /projects/<pid>/categories/<cid>/activities/<aid>/status – kanban move
"""

from flask import Blueprint, jsonify, request

from conecta.blueprints import json_body, missing_body, register_service_errors
from conecta.services import project_service
from conecta.utils.errors import E, api_error
from conecta.utils.helpers import current_user, parse_bool

project_bp = Blueprint("project", __name__, url_prefix="/api/v1")
register_service_errors(project_bp)


# ═════════════════════════════════════════════════════════════════════════════
# PROJECTS
# ═════════════════════════════════════════════════════════════════════════════


@project_bp.route("/projects", methods=["POST"])
def create_project():
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_service.create_project(data, actor=current_user())), 201


@project_bp.route("/projects/<int:pid>", methods=["GET"])
def get_project(pid):
    return jsonify(project_service.get_project(pid))


@project_bp.route("/projects/<int:pid>/progress", methods=["GET"])
def get_progress(pid):
    """Recomputed from persisted activities on every call."""
    return jsonify(project_service.get_progress(pid))


# ═════════════════════════════════════════════════════════════════════════════
# CATEGORIES
# ═════════════════════════════════════════════════════════════════════════════


@project_bp.route("/projects/<int:pid>/categories", methods=["GET"])
def list_categories(pid):
    include = parse_bool(request.args.get("include_activities"), default=False)
    return jsonify(project_service.list_categories(pid, include_activities=include))


@project_bp.route("/projects/<int:pid>/categories", methods=["POST"])
def create_category(pid):
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_service.create_category(pid, data, actor=current_user())), 201


@project_bp.route("/projects/<int:pid>/categories/<int:cid>", methods=["PUT"])
def update_category(pid, cid):
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_service.update_category(pid, cid, data))


@project_bp.route("/projects/<int:pid>/categories/<int:cid>", methods=["DELETE"])
def delete_category(pid, cid):
    return jsonify(project_service.delete_category(pid, cid))


# ═════════════════════════════════════════════════════════════════════════════
# ACTIVITIES
# ═════════════════════════════════════════════════════════════════════════════


@project_bp.route("/projects/<int:pid>/categories/<int:cid>/activities", methods=["GET"])
def list_activities(pid, cid):
    return jsonify(project_service.list_activities(pid, cid))


@project_bp.route("/projects/<int:pid>/categories/<int:cid>/activities", methods=["POST"])
def create_activity(pid, cid):
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_service.create_activity(pid, cid, data, actor=current_user())), 201


@project_bp.route("/projects/<int:pid>/categories/<int:cid>/activities/<int:aid>", methods=["PUT"])
def update_activity(pid, cid, aid):
    data = json_body()
    if data is None:
        return missing_body()
    return jsonify(project_service.update_activity(pid, cid, aid, data))


@project_bp.route("/projects/<int:pid>/categories/<int:cid>/activities/<int:aid>", methods=["DELETE"])
def delete_activity(pid, cid, aid):
    return jsonify(project_service.delete_activity(pid, cid, aid))


@project_bp.route(
    "/projects/<int:pid>/categories/<int:cid>/activities/<int:aid>/status",
    methods=["PATCH"],
)
def update_activity_status(pid, cid, aid):
    """Kanban move.  Body: { status_id: 1|2|3|4 }"""
    data = json_body()
    if data is None:
        return missing_body()
    if data.get("status_id") is None:
        return api_error(E.VALIDATION_REQUIRED, "status_id is required")
    return jsonify(project_service.update_activity_status(pid, cid, aid, data["status_id"]))
