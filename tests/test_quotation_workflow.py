"""QuotationWorkflow against a mocked gateway: load, edits, submit ordering."""

from datetime import date
from unittest.mock import MagicMock

import pytest

from conecta.integrations.conecta_gateway import GatewayError
from conecta.services.quotation_engine import CHECK_MESSAGES, MISSING_DECISION
from conecta.services.quotation_workflow import (
    CLIENT_NAME_FALLBACK,
    MSG_APPROVALS_FAILED,
    MSG_CREATED,
    MSG_LOAD_FAILED,
    MSG_SAVE_FAILED,
    MSG_UPDATED,
    QuotationWorkflow,
)


def _quotation(qid, material, direct, indirect, price, **extra):
    return {
        "id": qid, "company_name": f"Empresa {qid}",
        "material_cost": material, "direct_cost": direct,
        "indirect_cost": indirect, "price": price,
        "is_client_approved": None, "non_approval_reason": None,
        "segments": [], **extra,
    }


REQUIREMENTS = [
    {"id": 1, "requirement_name": "Cableado", "quotations": [
        _quotation(1, "100.00", "50.00", "25.00", "200.00"),
        _quotation(2, "80.00", "40.00", "10.00", "150.00"),
    ]},
]


@pytest.fixture()
def gateway():
    gw = MagicMock()
    gw.list_requirements_with_quotations.return_value = REQUIREMENTS
    gw.get_client_name.return_value = "Grupo Industrial Bajío"
    gw.get_client_quotation.return_value = {"quotation": None, "selected_companies": []}
    gw.save_client_quotation.return_value = {"quotation": {"id": 1, "has_file": True}, "created": True}
    return gw


@pytest.fixture()
def notices():
    return []


@pytest.fixture()
def workflow(gateway, notices):
    wf = QuotationWorkflow(
        7, gateway,
        notify=lambda level, message: notices.append((level, message)),
        today=lambda: date(2026, 3, 15),
    )
    assert wf.load() is True
    return wf


class TestLoad:
    def test_load_seeds_state_and_suggestion(self, workflow, gateway):
        gateway.list_requirements_with_quotations.assert_called_once_with(7)
        gateway.get_client_name.assert_called_once_with(7)
        assert workflow.client_name == "Grupo Industrial Bajío"
        assert len(workflow.state) == 0
        assert workflow.client_price_input == "0.00"
        assert workflow.loaded

    def test_client_name_failure_falls_back(self, gateway, notices):
        gateway.get_client_name.side_effect = GatewayError("timeout")
        wf = QuotationWorkflow(7, gateway, notify=lambda *a: notices.append(a))
        assert wf.load() is True
        assert wf.client_name == CLIENT_NAME_FALLBACK
        assert notices == []

    def test_quotation_load_failure_notifies_once(self, gateway, notices):
        gateway.list_requirements_with_quotations.side_effect = GatewayError("500", status_code=500)
        wf = QuotationWorkflow(7, gateway, notify=lambda *a: notices.append(a))
        assert wf.load() is False
        assert notices == [("error", MSG_LOAD_FAILED)]
        assert wf.requirements == []
        assert wf.totals.overall.price == 0

    def test_existing_quotation_prefills_inputs(self, gateway):
        gateway.get_client_quotation.return_value = {
            "quotation": {"client_price": "1350.00", "observations": "Incluye IVA", "has_file": True},
        }
        wf = QuotationWorkflow(7, gateway, notify=lambda *a: None)
        wf.load()
        assert wf.client_price_input == "1,350.00"
        assert wf.observations == "Incluye IVA"
        assert wf.has_existing_file

    def test_persisted_decisions_drive_totals(self, gateway):
        approved = [{"id": 1, "requirement_name": "Cableado", "quotations": [
            _quotation(1, "100.00", "50.00", "25.00", "200.00", is_client_approved=True),
        ]}]
        gateway.list_requirements_with_quotations.return_value = approved
        wf = QuotationWorkflow(7, gateway, notify=lambda *a: None)
        wf.load()
        assert wf.state.is_approved(1)
        assert wf.client_price_input == "200.00"


class TestEdits:
    def test_approval_toggle_overwrites_price_input(self, workflow):
        workflow.set_client_price("999.00")
        workflow.set_approval(1, True)
        assert workflow.client_price_input == "200.00"
        workflow.set_approval(2, True)
        assert workflow.client_price_input == "350.00"
        assert workflow.totals.overall.material_cost == 180

    def test_reason_edit_keeps_price_input(self, workflow):
        workflow.set_approval(1, True)
        workflow.set_client_price("$500.00")
        workflow.set_rejection_reason(2, "Tiempo de entrega")
        assert workflow.client_price_input == "$500.00"


class TestSubmit:
    def test_validation_failure_makes_no_calls(self, workflow, gateway, notices):
        workflow.set_approval(1, True)
        assert workflow.submit() is False
        assert notices == [("error", CHECK_MESSAGES[MISSING_DECISION])]
        gateway.save_approval_decisions.assert_not_called()
        gateway.save_client_quotation.assert_not_called()

    def test_successful_create(self, workflow, gateway, notices):
        workflow.set_approval(1, True)
        workflow.set_approval(2, False)
        workflow.set_rejection_reason(2, "Precio alto")
        workflow.set_client_price("$1,200.5")
        workflow.attach_file("cotizacion.pdf", b"%PDF-1.4")

        assert workflow.submit() is True

        gateway.save_approval_decisions.assert_called_once_with(7, [
            {"quotation_id": 1, "is_approved": True, "rejection_reason": None},
            {"quotation_id": 2, "is_approved": False, "rejection_reason": "Precio alto"},
        ])
        kwargs = gateway.save_client_quotation.call_args.kwargs
        assert kwargs["client_price"] == "1200.50"
        assert kwargs["date_quotation_client"] == "2026-03-15"
        assert kwargs["file_content"] == b"%PDF-1.4"
        assert notices == [("success", MSG_CREATED)]
        assert workflow.file_content is None
        assert workflow.has_existing_file

    def test_second_submit_reports_update(self, workflow, notices):
        workflow.set_approval(1, True)
        workflow.set_approval(2, True)
        workflow.attach_file("c.pdf", b"data")
        workflow.submit()
        workflow.set_observations("Versión 2")
        assert workflow.submit() is True
        assert notices[-1] == ("success", MSG_UPDATED)

    def test_failed_approvals_skip_client_quotation(self, workflow, gateway, notices):
        gateway.save_approval_decisions.side_effect = GatewayError("422", status_code=422)
        workflow.set_approval(1, True)
        workflow.set_approval(2, True)
        workflow.attach_file("c.pdf", b"data")

        assert workflow.submit() is False
        gateway.save_client_quotation.assert_not_called()
        assert notices == [("error", MSG_APPROVALS_FAILED)]

    def test_failed_client_quotation_save(self, workflow, gateway, notices):
        gateway.save_client_quotation.side_effect = GatewayError("500", status_code=500)
        workflow.set_approval(1, True)
        workflow.set_approval(2, True)
        workflow.attach_file("c.pdf", b"data")

        assert workflow.submit() is False
        gateway.save_approval_decisions.assert_called_once()
        assert notices == [("error", MSG_SAVE_FAILED)]
        assert workflow.file_content == b"data"
