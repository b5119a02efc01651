"""Category loaders: joined vs per-category shapes and the fallback rule."""

from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from conecta.integrations.conecta_gateway import ConectaGateway, GatewayError, GatewayResult
from conecta.models import db
from conecta.models.project import (
    ACTIVITY_CANCELLED,
    ACTIVITY_COMPLETED,
    ACTIVITY_IN_PROGRESS,
    Project,
    ProjectCategory,
    ProjectCategoryActivity,
)
from conecta.services.category_loader import (
    FallbackCategoryLoader,
    GatewayCategoryLoader,
    JoinedCategoryLoader,
    PerCategoryLoader,
    default_loader,
    gateway_loader,
)
from conecta.services.progress_engine import CategoryView, summarize_project


def _seed_project():
    project = Project(title="Planta tratadora")
    db.session.add(project)
    db.session.flush()

    civil = ProjectCategory(project_id=project.id, name="Obra civil")
    electric = ProjectCategory(project_id=project.id, name="Eléctrico")
    removed = ProjectCategory(project_id=project.id, name="Descartada", is_deleted=True)
    db.session.add_all([civil, electric, removed])
    db.session.flush()

    db.session.add_all([
        ProjectCategoryActivity(project_category_id=civil.id, name="Excavación",
                                status_id=ACTIVITY_COMPLETED),
        ProjectCategoryActivity(project_category_id=civil.id, name="Cimbra",
                                status_id=ACTIVITY_IN_PROGRESS),
        ProjectCategoryActivity(project_category_id=civil.id, name="Colado",
                                status_id=ACTIVITY_CANCELLED),
        ProjectCategoryActivity(project_category_id=electric.id, name="Acometida"),
        ProjectCategoryActivity(project_category_id=electric.id, name="Tierras",
                                status_id=ACTIVITY_COMPLETED, is_deleted=True),
        ProjectCategoryActivity(project_category_id=removed.id, name="Fantasma",
                                status_id=ACTIVITY_COMPLETED),
    ])
    db.session.commit()
    return project.id


class TestDatabaseLoaders:
    def test_both_shapes_agree(self):
        pid = _seed_project()

        joined = JoinedCategoryLoader().load(pid)
        per_category = PerCategoryLoader().load(pid)

        assert joined == per_category
        assert summarize_project(pid, joined) == summarize_project(pid, per_category)

    def test_deleted_category_skipped_deleted_activity_flagged(self):
        pid = _seed_project()
        categories = JoinedCategoryLoader().load(pid)

        assert [c.name for c in categories] == ["Obra civil", "Eléctrico"]
        electric = categories[1]
        assert [a.is_deleted for a in electric.activities] == [False, True]

    def test_progress_from_loaded_views(self):
        pid = _seed_project()
        summary = summarize_project(pid, default_loader().load(pid))
        # completed 1 of qualifying {Excavación, Cimbra, Acometida}
        assert summary.progress == 33

    def test_fallback_on_database_error(self):
        pid = _seed_project()
        primary = MagicMock()
        primary.load.side_effect = OperationalError("SELECT", {}, Exception("locked"))

        categories = FallbackCategoryLoader(primary, PerCategoryLoader()).load(pid)

        assert len(categories) == 2


class TestGatewayLoaders:
    def test_joined_shape_used_first(self):
        gateway = MagicMock()
        gateway.list_categories_with_activities.return_value = [CategoryView(id=1)]

        assert gateway_loader(gateway).load(4) == [CategoryView(id=1)]
        gateway.list_categories_per_category.assert_not_called()

    def test_falls_back_to_per_category_calls(self):
        gateway = MagicMock()
        gateway.list_categories_with_activities.side_effect = GatewayError("500", status_code=500)
        gateway.list_categories_per_category.return_value = [CategoryView(id=2)]

        assert gateway_loader(gateway).load(4) == [CategoryView(id=2)]
        gateway.list_categories_per_category.assert_called_once_with(4)

    def test_flat_joined_response_uses_per_category_fetches(self):
        gateway = ConectaGateway("http://api.local/api/v1", session=MagicMock())
        responses = {
            "/projects/7/categories": [{"id": 1, "name": "A"}],
            "/projects/7/categories/1/activities": [{"id": 10, "status": "completed"}],
        }
        calls = []

        def fake_request(method, path, **kwargs):
            calls.append((path, kwargs.get("params")))
            return GatewayResult(True, 200, responses[path], None, 1)

        gateway.request = fake_request

        categories = gateway_loader(gateway).load(7)

        assert summarize_project(7, categories).progress == 100
        assert calls == [
            ("/projects/7/categories", {"include_activities": "true"}),
            ("/projects/7/categories", None),
            ("/projects/7/categories/1/activities", None),
        ]

    def test_per_category_shape_selectable(self):
        gateway = MagicMock()
        GatewayCategoryLoader(gateway, joined=False).load(8)
        gateway.list_categories_per_category.assert_called_once_with(8)
