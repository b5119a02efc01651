"""
Quotation approval endpoints: listing, bulk decisions, the client quotation
and the validated submit flow.
"""

import json
from io import BytesIO

from conecta.models import db
from conecta.models.project_request import REQUEST_STATUS_CLIENT_QUOTATION, ProjectRequest
from conecta.models.quotation import CompanyQuotation


def _base(request_id):
    return f"/api/v1/project_requests/{request_id}"


def _approvals(client, request_id, updates):
    return client.post(f"{_base(request_id)}/quotation-approvals", json={"updates": updates})


def _save_client_quotation(client, request_id, price="350.00", file=True, **form):
    data = {"client_price": price, **form}
    if file:
        data["file"] = (BytesIO(b"%PDF-1.4 cotizacion"), "cotizacion_cliente.pdf")
    return client.post(
        f"{_base(request_id)}/client-quotation", data=data, content_type="multipart/form-data",
    )


def _submit(client, request_id, decisions, price="350.00", file=True):
    data = {"client_price": price, "decisions": json.dumps(decisions)}
    if file:
        data["file"] = (BytesIO(b"%PDF-1.4 final"), "final.pdf")
    return client.post(
        f"{_base(request_id)}/client-quotation/submit", data=data, content_type="multipart/form-data",
    )


def _decisions(client, request_id):
    """{quotation_id: (is_client_approved, non_approval_reason)} from the listing."""
    listing = client.get(f"{_base(request_id)}/quotations").get_json()
    return {
        q["id"]: (q["is_client_approved"], q["non_approval_reason"])
        for requirement in listing for q in requirement["quotations"]
    }


# ═════════════════════════════════════════════════════════════════════════════
# Listing
# ═════════════════════════════════════════════════════════════════════════════


def test_list_groups_quotations_by_requirement(client, quotation_request):
    rid = quotation_request["request_id"]
    res = client.get(f"{_base(rid)}/quotations")
    assert res.status_code == 200
    data = res.get_json()
    assert [r["requirement_name"] for r in data] == ["Cableado", "Tableros"]

    first = data[0]["quotations"][0]
    assert first["id"] == quotation_request["q1"]
    assert first["company_name"] == "Eléctrica Acme"
    assert first["material_cost"] == "100.00"
    assert first["total_cost"] == "160.00"
    assert first["price"] == "200.00"
    assert first["is_client_approved"] is None

    tableros = data[1]["quotations"][0]
    assert tableros["segments"][0]["estimated_delivery_date"] == "2026-12-01"


def test_list_for_missing_request(client):
    assert client.get(f"{_base(9999)}/quotations").status_code == 404


def test_requirement_without_quotations_is_omitted(client, quotation_request):
    rid = quotation_request["request_id"]
    client.post(f"{_base(rid)}/requirements", json={"requirement_name": "Sin cotizar"})
    names = [r["requirement_name"] for r in client.get(f"{_base(rid)}/quotations").get_json()]
    assert "Sin cotizar" not in names


# ═════════════════════════════════════════════════════════════════════════════
# Bulk decisions
# ═════════════════════════════════════════════════════════════════════════════


def test_save_decisions(client, quotation_request):
    rid, q1, q2 = quotation_request["request_id"], quotation_request["q1"], quotation_request["q2"]
    res = _approvals(client, rid, [
        {"quotation_id": q1, "is_approved": True, "rejection_reason": "ignorado"},
        {"quotation_id": q2, "is_approved": False, "rejection_reason": " Precio alto "},
    ])
    assert res.status_code == 200
    body = res.get_json()
    assert body["success"] is True
    assert body["updated"] == 2

    decisions = _decisions(client, rid)
    assert decisions[q1] == (True, None)
    assert decisions[q2] == (False, "Precio alto")
    assert decisions[quotation_request["q3"]] == (None, None)


def test_decisions_write_log_rows(client, quotation_request):
    rid, q1, q2 = quotation_request["request_id"], quotation_request["q1"], quotation_request["q2"]
    _approvals(client, rid, [
        {"quotation_id": q1, "is_approved": True},
        {"quotation_id": q2, "is_approved": False, "rejection_reason": "Tiempo de entrega"},
    ])
    logs = client.get(f"{_base(rid)}/logs").get_json()
    events = [log["event_type"] for log in logs]
    assert "REQUIREMENT_QUOTATION_APPROVED" in events
    rejected = next(log for log in logs if log["event_type"] == "REQUIREMENT_QUOTATION_REJECTED")
    assert "Tiempo de entrega" in rejected["message"]
    assert "Volta Instalaciones" in rejected["message"]


def test_batch_is_all_or_nothing(client, quotation_request):
    rid, q1, q2 = quotation_request["request_id"], quotation_request["q1"], quotation_request["q2"]
    res = _approvals(client, rid, [
        {"quotation_id": q1, "is_approved": True},
        {"quotation_id": q2, "is_approved": False, "rejection_reason": "   "},
        {"quotation_id": 987654, "is_approved": True},
    ])
    assert res.status_code == 422
    errors = res.get_json()["details"]["errors"]
    assert {e["quotation_id"] for e in errors} == {q2, 987654}
    assert _decisions(client, rid)[q1] == (None, None)


def test_duplicate_quotation_in_batch_rejected(client, quotation_request):
    rid, q1 = quotation_request["request_id"], quotation_request["q1"]
    res = _approvals(client, rid, [
        {"quotation_id": q1, "is_approved": True},
        {"quotation_id": q1, "is_approved": False, "rejection_reason": "x"},
    ])
    assert res.status_code == 422


def test_quotation_of_other_request_rejected(client, quotation_request, client_row):
    other = client.post(
        "/api/v1/project_requests", json={"title": "Otra", "client_id": client_row["id"]},
    ).get_json()
    res = _approvals(client, other["id"], [{"quotation_id": quotation_request["q1"], "is_approved": True}])
    assert res.status_code == 422


def test_decisions_require_updates_key(client, quotation_request):
    res = client.post(f"{_base(quotation_request['request_id'])}/quotation-approvals", json={})
    assert res.status_code == 400
    res = _approvals(client, quotation_request["request_id"], [])
    assert res.status_code == 422


def test_decision_needs_boolean(client, quotation_request):
    res = _approvals(client, quotation_request["request_id"], [
        {"quotation_id": quotation_request["q1"], "is_approved": "quizá"},
    ])
    assert res.status_code == 422


# ═════════════════════════════════════════════════════════════════════════════
# Client quotation
# ═════════════════════════════════════════════════════════════════════════════


def test_create_client_quotation(client, quotation_request):
    rid, q1, q2 = quotation_request["request_id"], quotation_request["q1"], quotation_request["q2"]
    _approvals(client, rid, [
        {"quotation_id": q1, "is_approved": True},
        {"quotation_id": q2, "is_approved": False, "rejection_reason": "Precio"},
    ])

    res = _save_client_quotation(client, rid, price="$1,350.00", observations="Incluye IVA")
    assert res.status_code == 201
    body = res.get_json()
    assert body["created"] is True
    quotation = body["quotation"]
    assert quotation["client_price"] == "1350.00"
    assert quotation["has_file"] is True
    assert quotation["quotation_file_name"] == "cotizacion_cliente.pdf"
    assert quotation["observations"] == "Incluye IVA"
    assert quotation["date_quotation_client"] is not None

    request_row = db.session.get(ProjectRequest, rid)
    assert request_row.status_id == REQUEST_STATUS_CLIENT_QUOTATION
    selected = {
        q.participant_id: q.is_client_selected
        for q in db.session.query(CompanyQuotation).all()
    }
    assert selected[q1] is True
    assert selected[q2] is False


def test_create_requires_file(client, quotation_request):
    res = _save_client_quotation(client, quotation_request["request_id"], file=False)
    assert res.status_code == 422
    assert res.get_json()["code"] == "missing_file"


def test_update_without_file_keeps_stored_file(client, quotation_request):
    rid = quotation_request["request_id"]
    _save_client_quotation(client, rid, price="500")
    res = _save_client_quotation(client, rid, price="650.5", file=False, date_quotation_client="2026-04-01")
    assert res.status_code == 200
    body = res.get_json()
    assert body["created"] is False
    assert body["quotation"]["client_price"] == "650.50"
    assert body["quotation"]["has_file"] is True
    assert body["quotation"]["date_quotation_client"] == "2026-04-01"

    download = client.get(f"{_base(rid)}/client-quotation/download")
    assert download.status_code == 200
    assert download.data == b"%PDF-1.4 cotizacion"
    assert "cotizacion_cliente.pdf" in download.headers["Content-Disposition"]


def test_client_price_must_be_positive(client, quotation_request):
    res = _save_client_quotation(client, quotation_request["request_id"], price="$0.00")
    assert res.status_code == 422
    assert res.get_json()["code"] == "invalid_client_price"


def test_client_price_required(client, quotation_request):
    res = client.post(
        f"{_base(quotation_request['request_id'])}/client-quotation",
        data={"observations": "x"}, content_type="multipart/form-data",
    )
    assert res.status_code == 400


def test_invalid_quotation_date(client, quotation_request):
    res = _save_client_quotation(
        client, quotation_request["request_id"], date_quotation_client="mañana",
    )
    assert res.status_code == 422


def test_get_client_quotation_lists_selected_companies(client, quotation_request):
    rid, q1, q3 = quotation_request["request_id"], quotation_request["q1"], quotation_request["q3"]
    empty = client.get(f"{_base(rid)}/client-quotation").get_json()
    assert empty["quotation"] is None
    assert empty["selected_companies"] == []

    _approvals(client, rid, [
        {"quotation_id": q1, "is_approved": True},
        {"quotation_id": q3, "is_approved": True},
    ])
    _save_client_quotation(client, rid, price="700")
    body = client.get(f"{_base(rid)}/client-quotation").get_json()
    assert body["quotation"]["client_price"] == "700.00"
    assert body["selected_company_ids"] == [q1, q3]
    assert body["selected_companies"][0]["price"] == "200.00"


def test_download_without_quotation_is_404(client, quotation_request):
    res = client.get(f"{_base(quotation_request['request_id'])}/client-quotation/download")
    assert res.status_code == 404


def test_client_quotation_save_is_logged(client, quotation_request):
    rid = quotation_request["request_id"]
    _save_client_quotation(client, rid, price="1234.5")
    latest = client.get(f"{_base(rid)}/logs").get_json()[0]
    assert latest["event_type"] == "CLIENT_QUOTATION_SAVED"
    assert "$1,234.50" in latest["message"]


# ═════════════════════════════════════════════════════════════════════════════
# Validated submit
# ═════════════════════════════════════════════════════════════════════════════


def _all_decisions(q, approve=("q1", "q3"), reason="Precio alto"):
    return [
        {"quotation_id": q[key], "is_approved": key in approve,
         "rejection_reason": None if key in approve else reason}
        for key in ("q1", "q2", "q3")
    ]


def test_submit_persists_decisions_then_quotation(client, quotation_request):
    rid = quotation_request["request_id"]
    res = _submit(client, rid, _all_decisions(quotation_request), price="$700.00")
    assert res.status_code == 201
    body = res.get_json()
    assert body["quotation"]["client_price"] == "700.00"
    assert body["decisions"]["updated"] == 3

    decisions = _decisions(client, rid)
    assert decisions[quotation_request["q2"]] == (False, "Precio alto")
    assert decisions[quotation_request["q1"]] == (True, None)


def test_submit_missing_decision(client, quotation_request):
    rid = quotation_request["request_id"]
    partial = _all_decisions(quotation_request)[:2]
    res = _submit(client, rid, partial)
    assert res.status_code == 422
    body = res.get_json()
    assert body["code"] == "missing_decision"
    assert body["details"]["quotation_ids"] == [quotation_request["q3"]]
    assert _decisions(client, rid)[quotation_request["q1"]] == (None, None)


def test_submit_blank_rejection_reason(client, quotation_request):
    rid = quotation_request["request_id"]
    decisions = _all_decisions(quotation_request)
    decisions[1]["rejection_reason"] = "   "
    res = _submit(client, rid, decisions)
    assert res.status_code == 422
    body = res.get_json()
    assert body["code"] == "missing_rejection_reason"
    assert body["details"]["quotation_ids"] == [quotation_request["q2"]]
    assert _decisions(client, rid)[quotation_request["q2"]] == (None, None)


def test_submit_all_rejected(client, quotation_request):
    res = _submit(client, quotation_request["request_id"], _all_decisions(quotation_request, approve=()))
    assert res.status_code == 422
    assert res.get_json()["code"] == "no_approved_quotations"


def test_submit_invalid_price_writes_nothing(client, quotation_request):
    rid = quotation_request["request_id"]
    res = _submit(client, rid, _all_decisions(quotation_request), price="$0.00")
    assert res.status_code == 422
    assert res.get_json()["code"] == "invalid_client_price"
    assert _decisions(client, rid)[quotation_request["q1"]] == (None, None)
    assert client.get(f"{_base(rid)}/client-quotation").get_json()["quotation"] is None


def test_submit_missing_file(client, quotation_request):
    res = _submit(client, quotation_request["request_id"], _all_decisions(quotation_request), file=False)
    assert res.status_code == 422
    assert res.get_json()["code"] == "missing_file"


def test_submit_uses_persisted_decisions(client, quotation_request):
    rid = quotation_request["request_id"]
    _approvals(client, rid, _all_decisions(quotation_request))
    _save_client_quotation(client, rid, price="700")
    res = _submit(client, rid, [], price="710", file=False)
    assert res.status_code == 200
    assert res.get_json()["created"] is False


def test_submit_rejects_bad_decisions_json(client, quotation_request):
    res = client.post(
        f"{_base(quotation_request['request_id'])}/client-quotation/submit",
        data={"client_price": "100", "decisions": "{not json"},
        content_type="multipart/form-data",
    )
    assert res.status_code == 400
    assert res.get_json()["code"] == "ERR_VALIDATION_INVALID"


def test_new_company_quotation_resets_decision(client, quotation_request):
    rid, q1 = quotation_request["request_id"], quotation_request["q1"]
    _approvals(client, rid, [{"quotation_id": q1, "is_approved": True}])
    client.put(f"{_base(rid)}/participants/{q1}/quotation", json={"price": 210})
    assert _decisions(client, rid)[q1] == (None, None)
