"""
Category loaders — two ways of fetching a project's categories with their
activities, plus a fallback combinator.

    JoinedCategoryLoader      one query, activities eagerly loaded
    PerCategoryLoader         one category query + one activity query per category
    GatewayCategoryLoader     same two shapes over HTTP (ConectaGateway)
    FallbackCategoryLoader    try primary, log and use fallback on failure

Every loader returns detached ``CategoryView`` / ``ActivityView`` objects
(ordered by id) so both shapes feed the progress engine identically.
Soft-deleted categories are skipped; soft-deleted activities are carried
with ``is_deleted=True`` and the engine excludes them.
"""

import logging
from abc import ABC, abstractmethod

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from conecta.integrations.conecta_gateway import GatewayError
from conecta.models import db
from conecta.models.project import ProjectCategory, ProjectCategoryActivity
from conecta.services.progress_engine import ActivityView, CategoryView

logger = logging.getLogger(__name__)


def _activity_view(activity) -> ActivityView:
    return ActivityView(
        id=activity.id,
        status=activity.status,
        is_deleted=bool(activity.is_deleted),
        name=activity.name,
        category_id=activity.project_category_id,
    )


class CategoryLoader(ABC):
    @abstractmethod
    def load(self, project_id: int) -> list[CategoryView]:
        ...


class JoinedCategoryLoader(CategoryLoader):
    """Categories with their activities in one round of eager loading."""

    def load(self, project_id):
        stmt = (
            select(ProjectCategory)
            .where(
                ProjectCategory.project_id == project_id,
                ProjectCategory.is_deleted.is_(False),
            )
            .options(selectinload(ProjectCategory.activities))
            .order_by(ProjectCategory.id)
        )
        categories = db.session.execute(stmt).scalars().all()
        return [
            CategoryView(
                id=c.id,
                name=c.name,
                activities=[_activity_view(a) for a in sorted(c.activities, key=lambda a: a.id)],
            )
            for c in categories
        ]


class PerCategoryLoader(CategoryLoader):
    """One activity query per category (N+1); slower but minimal joins."""

    def load(self, project_id):
        categories = db.session.execute(
            select(ProjectCategory.id, ProjectCategory.name)
            .where(
                ProjectCategory.project_id == project_id,
                ProjectCategory.is_deleted.is_(False),
            )
            .order_by(ProjectCategory.id)
        ).all()
        views = []
        for category_id, name in categories:
            activities = db.session.execute(
                select(ProjectCategoryActivity)
                .where(ProjectCategoryActivity.project_category_id == category_id)
                .order_by(ProjectCategoryActivity.id)
            ).scalars().all()
            views.append(CategoryView(
                id=category_id,
                name=name,
                activities=[_activity_view(a) for a in activities],
            ))
        return views


class GatewayCategoryLoader(CategoryLoader):
    """HTTP loader; ``joined=False`` selects the per-category endpoint shape."""

    def __init__(self, gateway, joined=True):
        self.gateway = gateway
        self.joined = joined

    def load(self, project_id):
        if self.joined:
            return self.gateway.list_categories_with_activities(project_id)
        return self.gateway.list_categories_per_category(project_id)


class FallbackCategoryLoader(CategoryLoader):
    def __init__(self, primary: CategoryLoader, fallback: CategoryLoader):
        self.primary = primary
        self.fallback = fallback

    def load(self, project_id):
        try:
            return self.primary.load(project_id)
        except (SQLAlchemyError, GatewayError) as exc:
            logger.warning(
                "Primary category loader %s failed, falling back to %s: %s",
                type(self.primary).__name__, type(self.fallback).__name__, exc,
                extra={"project_id": project_id},
            )
            if isinstance(exc, SQLAlchemyError):
                db.session.rollback()
            return self.fallback.load(project_id)


def default_loader() -> CategoryLoader:
    return FallbackCategoryLoader(JoinedCategoryLoader(), PerCategoryLoader())


def gateway_loader(gateway) -> CategoryLoader:
    return FallbackCategoryLoader(
        GatewayCategoryLoader(gateway, joined=True),
        GatewayCategoryLoader(gateway, joined=False),
    )
