"""
Catalog blueprint — specialties, scopes, subscopes and certifications.

Routes (prefix /api/v1/catalogs):
  GET   /<kind>[?active=true&specialty_id=&scope_id=]  – list
  POST  /<kind>                                        – create
  PUT   /<kind>/<id>                                   – update
  PATCH /<kind>/<id>/toggle-status                     – flip is_active

kind ∈ specialties, scopes (parent specialty_id), subscopes (parent
scope_id), certifications.  Rows are never deleted; names are unique
(case-insensitive) under the same parent.
"""

import logging

from flask import Blueprint, jsonify, request
from sqlalchemy import func, select

from conecta.models import db
from conecta.models.catalog import Certification, Scope, Specialty, Subscope
from conecta.utils.errors import E, api_error
from conecta.utils.helpers import current_user, db_commit_or_error, get_or_404, parse_bool, parse_int

logger = logging.getLogger(__name__)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/v1/catalogs")

# kind → (model, parent column, parent model)
_CATALOGS = {
    "specialties": (Specialty, None, None),
    "scopes": (Scope, "specialty_id", Specialty),
    "subscopes": (Subscope, "scope_id", Scope),
    "certifications": (Certification, None, None),
}


def _resolve(kind):
    entry = _CATALOGS.get(kind)
    if entry is None:
        return None, api_error(E.NOT_FOUND, f"Unknown catalog '{kind}'")
    return entry, None


def _name_taken(model, name, parent_field=None, parent_id=None, exclude_id=None):
    stmt = select(model.id).where(
        model.is_deleted.is_(False),
        func.lower(model.name) == name.lower(),
    )
    if parent_field:
        stmt = stmt.where(getattr(model, parent_field) == parent_id)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    return db.session.execute(stmt).first() is not None


@catalog_bp.route("/<kind>", methods=["GET"])
def list_items(kind):
    entry, err = _resolve(kind)
    if err:
        return err
    model, parent_field, _ = entry

    stmt = select(model).where(model.is_deleted.is_(False))
    if parse_bool(request.args.get("active"), default=False):
        stmt = stmt.where(model.is_active.is_(True))
    if parent_field:
        parent_id = parse_int(request.args.get(parent_field))
        if parent_id is not None:
            stmt = stmt.where(getattr(model, parent_field) == parent_id)
    rows = db.session.execute(stmt.order_by(model.num, model.name)).scalars().all()
    return jsonify([r.to_dict() for r in rows])


@catalog_bp.route("/<kind>", methods=["POST"])
def create_item(kind):
    """Body: { name, description?, num?, specialty_id | scope_id }"""
    entry, err = _resolve(kind)
    if err:
        return err
    model, parent_field, parent_model = entry

    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    if not name:
        return api_error(E.VALIDATION_REQUIRED, "name is required")

    fields = {}
    if parent_field:
        parent_id = parse_int(data.get(parent_field))
        if parent_id is None:
            return api_error(E.VALIDATION_REQUIRED, f"{parent_field} is required")
        _, err = get_or_404(parent_model, parent_id)
        if err:
            return err
        fields[parent_field] = parent_id

    if _name_taken(model, name, parent_field, fields.get(parent_field)):
        return api_error(E.CONFLICT_DUPLICATE, f"'{name}' already exists")

    item = model(
        name=name,
        description=data.get("description"),
        num=parse_int(data.get("num")),
        created_by=current_user(),
        **fields,
    )
    db.session.add(item)
    err = db_commit_or_error()
    if err:
        return err
    logger.info("Catalog item created kind=%s id=%s", kind, item.id)
    return jsonify(item.to_dict()), 201


@catalog_bp.route("/<kind>/<int:item_id>", methods=["PUT"])
def update_item(kind, item_id):
    entry, err = _resolve(kind)
    if err:
        return err
    model, parent_field, _ = entry
    item, err = get_or_404(model, item_id)
    if err:
        return err

    data = request.get_json(silent=True) or {}
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            return api_error(E.VALIDATION_REQUIRED, "name cannot be empty")
        parent_id = getattr(item, parent_field) if parent_field else None
        if _name_taken(model, name, parent_field, parent_id, exclude_id=item.id):
            return api_error(E.CONFLICT_DUPLICATE, f"'{name}' already exists")
        item.name = name
    if "description" in data:
        item.description = data["description"]
    if "num" in data:
        item.num = parse_int(data["num"])

    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict())


@catalog_bp.route("/<kind>/<int:item_id>/toggle-status", methods=["PATCH"])
def toggle_status(kind, item_id):
    entry, err = _resolve(kind)
    if err:
        return err
    model, _, _ = entry
    item, err = get_or_404(model, item_id)
    if err:
        return err

    item.is_active = not item.is_active
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(item.to_dict())
