"""
Parent-scoped query helpers.

Every nested get-by-id (category inside a project, activity inside a
category, participant inside a project request) goes through ``get_scoped``
so a URL that mixes ids from different parents is a 404 rather than a
silent cross-parent write.

Usage:
    category = get_scoped(ProjectCategory, cid, project_id=pid)
    activity = get_scoped(ProjectCategoryActivity, aid, project_category_id=cid)
    participant = get_scoped(RequirementParticipant, qid, project_request_id=rid)

Each keyword argument maps directly to a column on the model.  A keyword
naming a column the model does not have raises ValueError at call time.
Soft-deleted rows are treated as missing.
"""

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from conecta.core.exceptions import NotFoundError, PersistenceError
from conecta.models import db

logger = logging.getLogger(__name__)


def get_scoped(model, pk, **scopes):
    """Fetch a single live entity by PK, filtered by its parent column(s).

    Raises:
        ValueError: If a scope keyword is not a column on the model.
        NotFoundError: If the entity does not exist, is soft-deleted, or
                       belongs to a different parent.
    """
    missing = [field for field in scopes if not hasattr(model, field)]
    if missing:
        raise ValueError(
            f"{model.__name__} has no scope column(s) {sorted(missing)}; "
            "refusing to perform an unscoped lookup."
        )

    stmt = select(model).where(model.id == pk)
    for field, value in scopes.items():
        stmt = stmt.where(getattr(model, field) == value)
    if hasattr(model, "is_deleted"):
        stmt = stmt.where(model.is_deleted.is_(False))

    result = db.session.execute(stmt).scalar_one_or_none()
    if result is None:
        logger.debug("get_scoped: %s id=%s not found in scope %s", model.__name__, pk, scopes)
        raise NotFoundError(resource=model.__name__, resource_id=pk)
    return result


def get_live(model, pk):
    """Fetch a top-level entity by PK; soft-deleted rows raise NotFoundError."""
    obj = db.session.get(model, pk)
    if obj is None or getattr(obj, "is_deleted", False):
        raise NotFoundError(resource=model.__name__, resource_id=pk)
    return obj


def commit_or_raise(operation: str) -> None:
    """Commit the session; on failure roll back and raise PersistenceError."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Database error during %s", operation)
        raise PersistenceError(operation, exc) from exc
