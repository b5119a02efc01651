"""
Shared pytest fixtures for the Conecta Tool test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - project: Pre-created Project via the API
    - quotation_request: request with two requirements and three quoted companies
"""

import pytest

from conecta import create_app
from conecta.models import db as _db


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def project(client):
    res = client.post("/api/v1/projects", json={"title": "Nave industrial Querétaro"})
    assert res.status_code == 201
    return res.get_json()


def _make_category(client, project_id, name="Obra civil"):
    res = client.post(f"/api/v1/projects/{project_id}/categories", json={"name": name})
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _make_activity(client, project_id, category_id, name="Actividad", status_id=None):
    body = {"name": name}
    if status_id is not None:
        body["status_id"] = status_id
    res = client.post(
        f"/api/v1/projects/{project_id}/categories/{category_id}/activities", json=body,
    )
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def make_category():
    """Factory: make_category(client, project_id, name) → category dict."""
    return _make_category


@pytest.fixture()
def make_activity():
    """Factory: make_activity(client, project_id, category_id, name, status_id) → activity dict."""
    return _make_activity


@pytest.fixture()
def client_row(client):
    res = client.post("/api/v1/clients", json={"name": "Grupo Industrial Bajío", "rfc": "GIB010101AAA"})
    assert res.status_code == 201
    return res.get_json()


@pytest.fixture()
def project_request(client, client_row):
    res = client.post(
        "/api/v1/project_requests",
        json={"title": "Subestación eléctrica", "client_id": client_row["id"]},
    )
    assert res.status_code == 201
    return res.get_json()


def _make_company(client, name):
    res = client.post("/api/v1/companies", json={"comercial_name": name})
    assert res.status_code == 201
    return res.get_json()


def _make_requirement(client, request_id, name):
    res = client.post(
        f"/api/v1/project_requests/{request_id}/requirements",
        json={"requirement_name": name},
    )
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def _make_quoted_participant(client, request_id, requirement_id, company_id, **amounts):
    res = client.post(
        f"/api/v1/project_requests/{request_id}/requirements/{requirement_id}/participants",
        json={"company_id": company_id},
    )
    assert res.status_code == 201, res.get_json()
    participant = res.get_json()
    res = client.put(
        f"/api/v1/project_requests/{request_id}/participants/{participant['id']}/quotation",
        json=amounts,
    )
    assert res.status_code == 200, res.get_json()
    return participant


@pytest.fixture()
def quotation_request(client, project_request):
    """Requirement "Cableado" quoted by two companies, "Tableros" by one.

    Returns ``{"request_id", "q1", "q2", "q3"}`` where qN are participant
    (quotation) ids:
        q1  Cableado  material 100 direct 50 indirect 10  price 200
        q2  Cableado  material  80 direct 40 indirect  5  price 150
        q3  Tableros  material 300 direct 0  indirect  0  price 500
    """
    request_id = project_request["id"]
    cableado = _make_requirement(client, request_id, "Cableado")
    tableros = _make_requirement(client, request_id, "Tableros")
    acme = _make_company(client, "Eléctrica Acme")
    volta = _make_company(client, "Volta Instalaciones")

    q1 = _make_quoted_participant(
        client, request_id, cableado["id"], acme["id"],
        material_cost=100, direct_cost=50, indirect_cost=10, price=200,
    )
    q2 = _make_quoted_participant(
        client, request_id, cableado["id"], volta["id"],
        material_cost="80", direct_cost="40", indirect_cost="5", price="150",
    )
    q3 = _make_quoted_participant(
        client, request_id, tableros["id"], acme["id"],
        material_cost=300, direct_cost=0, indirect_cost=0, price=500,
        segments=[{"estimated_delivery_date": "2026-12-01", "description": "Entrega de tableros"}],
    )
    return {"request_id": request_id, "q1": q1["id"], "q2": q2["id"], "q3": q3["id"]}
