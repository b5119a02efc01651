"""Catalog endpoints and how requirements consume them."""

import pytest

URL = "/api/v1/catalogs"


def _create(client, kind, **body):
    res = client.post(f"{URL}/{kind}", json=body)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


@pytest.fixture()
def tree(client):
    specialty = _create(client, "specialties", name="Eléctrica", num=1)
    scope = _create(client, "scopes", name="Media tensión", specialty_id=specialty["id"])
    subscope = _create(client, "subscopes", name="Subestaciones", scope_id=scope["id"])
    cert = _create(client, "certifications", name="ISO 9001")
    return {"specialty": specialty, "scope": scope, "subscope": subscope, "cert": cert}


class TestCatalogCrud:
    def test_create_and_list(self, client):
        _create(client, "specialties", name="Mecánica", num=2)
        _create(client, "specialties", name="Civil", num=1)
        names = [s["name"] for s in client.get(f"{URL}/specialties").get_json()]
        assert names == ["Civil", "Mecánica"]

    def test_unknown_kind(self, client):
        assert client.get(f"{URL}/colores").status_code == 404

    def test_name_required(self, client):
        assert client.post(f"{URL}/certifications", json={"name": " "}).status_code == 400

    def test_duplicate_name_case_insensitive(self, client):
        _create(client, "certifications", name="ISO 9001")
        res = client.post(f"{URL}/certifications", json={"name": "iso 9001"})
        assert res.status_code == 409

    def test_scope_requires_existing_parent(self, client):
        assert client.post(f"{URL}/scopes", json={"name": "Baja tensión"}).status_code == 400
        res = client.post(f"{URL}/scopes", json={"name": "Baja tensión", "specialty_id": 999})
        assert res.status_code == 404

    def test_same_name_allowed_under_other_parent(self, client, tree):
        other = _create(client, "specialties", name="Instrumentación")
        _create(client, "scopes", name="Media tensión", specialty_id=other["id"])
        res = client.post(
            f"{URL}/scopes", json={"name": "media tensión", "specialty_id": tree["specialty"]["id"]},
        )
        assert res.status_code == 409

    def test_filter_by_parent(self, client, tree):
        other = _create(client, "specialties", name="Civil")
        _create(client, "scopes", name="Cimentaciones", specialty_id=other["id"])
        res = client.get(f"{URL}/scopes?specialty_id={tree['specialty']['id']}")
        assert [s["name"] for s in res.get_json()] == ["Media tensión"]

    def test_update(self, client, tree):
        res = client.put(
            f"{URL}/certifications/{tree['cert']['id']}",
            json={"name": "ISO 9001:2015", "description": "Gestión de calidad"},
        )
        assert res.status_code == 200
        assert res.get_json()["name"] == "ISO 9001:2015"
        assert res.get_json()["description"] == "Gestión de calidad"

    def test_update_to_taken_name(self, client, tree):
        _create(client, "certifications", name="ISO 14001")
        res = client.put(f"{URL}/certifications/{tree['cert']['id']}", json={"name": "ISO 14001"})
        assert res.status_code == 409

    def test_toggle_status_and_active_filter(self, client, tree):
        cert_id = tree["cert"]["id"]
        res = client.patch(f"{URL}/certifications/{cert_id}/toggle-status")
        assert res.get_json()["is_active"] is False

        assert client.get(f"{URL}/certifications?active=true").get_json() == []
        assert len(client.get(f"{URL}/certifications").get_json()) == 1

        res = client.patch(f"{URL}/certifications/{cert_id}/toggle-status")
        assert res.get_json()["is_active"] is True


class TestRequirementCatalogRefs:
    def _add(self, client, project_request, **body):
        return client.post(
            f"/api/v1/project_requests/{project_request['id']}/requirements",
            json={"requirement_name": "Subestación 115kV", **body},
        )

    def test_requirement_with_catalog_refs(self, client, project_request, tree):
        res = self._add(
            client, project_request,
            specialty_id=tree["specialty"]["id"],
            scope_id=tree["scope"]["id"],
            subscope_id=tree["subscope"]["id"],
            certification_ids=[tree["cert"]["id"]],
        )
        assert res.status_code == 201
        body = res.get_json()
        assert body["subscope_id"] == tree["subscope"]["id"]
        assert body["certification_ids"] == [tree["cert"]["id"]]

    def test_inactive_entry_rejected(self, client, project_request, tree):
        client.patch(f"{URL}/specialties/{tree['specialty']['id']}/toggle-status")
        res = self._add(client, project_request, specialty_id=tree["specialty"]["id"])
        assert res.status_code == 422

    def test_scope_from_other_specialty_rejected(self, client, project_request, tree):
        other = _create(client, "specialties", name="Civil")
        res = self._add(
            client, project_request, specialty_id=other["id"], scope_id=tree["scope"]["id"],
        )
        assert res.status_code == 422

    def test_unknown_certification_rejected(self, client, project_request):
        res = self._add(client, project_request, certification_ids=[4242])
        assert res.status_code == 422
