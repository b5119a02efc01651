"""
Operator workflow for building the client quotation of a project request.

Client-side orchestration over ``ConectaGateway``:

    load()     requirements-with-quotations and client name fetched
               concurrently, then the existing client quotation.
    set_*      operator edits; approval toggles recompute totals and
               overwrite the client price input with the suggestion.
    submit()   validate → approval batch → client quotation, strictly in
               that order; the second write only runs if the first succeeded.

Every failure is caught here, reported once through ``notify(level,
message)`` and turned into a boolean outcome.  Nothing is retried.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date

from conecta.integrations.conecta_gateway import GatewayError
from conecta.services import quotation_engine as engine
from conecta.utils.money import format_amount

logger = logging.getLogger(__name__)

CLIENT_NAME_FALLBACK = "N/A"

MSG_LOAD_FAILED = "Error al cargar los datos de cotizaciones"
MSG_APPROVALS_FAILED = "Error al guardar las aprobaciones/rechazos de cotizaciones"
MSG_SAVE_FAILED = "Error al guardar la cotización para cliente"
MSG_CREATED = "Cotización para cliente creada correctamente"
MSG_UPDATED = "Cotización para cliente actualizada correctamente"


def _log_notify(level: str, message: str) -> None:
    logger.log(logging.ERROR if level == "error" else logging.INFO, message)


class QuotationWorkflow:
    def __init__(self, request_id, gateway, notify=None, today=None):
        self.request_id = request_id
        self.gateway = gateway
        self.notify = notify or _log_notify
        self._today = today or date.today

        self.requirements: list = []
        self.state = engine.ApprovalState()
        self.totals = engine.compute_totals([], self.state)
        self.client_name = CLIENT_NAME_FALLBACK
        self.existing_quotation: dict | None = None
        self.client_price_input = ""
        self.observations = ""
        self.file_name: str | None = None
        self.file_content: bytes | None = None
        self.loaded = False

    # ── Loading ─────────────────────────────────────────────────────────────

    def load(self) -> bool:
        with ThreadPoolExecutor(max_workers=2) as pool:
            requirements_future = pool.submit(
                self.gateway.list_requirements_with_quotations, self.request_id,
            )
            client_future = pool.submit(self.gateway.get_client_name, self.request_id)

        try:
            self.client_name = client_future.result() or CLIENT_NAME_FALLBACK
        except GatewayError as exc:
            logger.warning(
                "Client name unavailable for request %s: %s", self.request_id, exc,
                extra={"project_request_id": self.request_id},
            )
            self.client_name = CLIENT_NAME_FALLBACK

        try:
            payload = requirements_future.result()
        except GatewayError as exc:
            logger.error(
                "Failed to load quotations for request %s: %s", self.request_id, exc,
                extra={"project_request_id": self.request_id},
            )
            self.notify("error", MSG_LOAD_FAILED)
            self.requirements = []
            self.state = engine.ApprovalState()
            self.totals = engine.compute_totals([], self.state)
            self.loaded = False
            return False

        self.requirements = engine.requirements_from_json(payload)
        self.state = engine.ApprovalState.from_quotations(self.requirements)
        self.totals = engine.compute_totals(self.requirements, self.state)

        self.existing_quotation = self._fetch_existing_quotation()
        if self.existing_quotation:
            self.client_price_input = format_amount(
                self.existing_quotation.get("client_price") or 0
            )
            self.observations = self.existing_quotation.get("observations") or ""
        else:
            self.client_price_input = engine.suggest_client_price(self.totals)
            self.observations = ""
        self.loaded = True
        return True

    def _fetch_existing_quotation(self) -> dict | None:
        try:
            body = self.gateway.get_client_quotation(self.request_id)
        except GatewayError as exc:
            logger.warning(
                "No client quotation loaded for request %s: %s", self.request_id, exc,
                extra={"project_request_id": self.request_id},
            )
            return None
        return (body or {}).get("quotation")

    @property
    def has_existing_file(self) -> bool:
        return bool(self.existing_quotation and self.existing_quotation.get("has_file"))

    # ── Operator edits ──────────────────────────────────────────────────────

    def set_approval(self, quotation_id, approved: bool) -> None:
        self.state = self.state.set_approval(quotation_id, approved)
        self.totals = engine.compute_totals(self.requirements, self.state)
        # The suggestion always replaces whatever is in the price input
        self.client_price_input = engine.suggest_client_price(self.totals)

    def set_rejection_reason(self, quotation_id, reason: str) -> None:
        self.state = self.state.set_rejection_reason(quotation_id, reason)

    def set_client_price(self, text: str) -> None:
        self.client_price_input = text or ""

    def set_observations(self, text: str) -> None:
        self.observations = text or ""

    def attach_file(self, file_name: str, content: bytes) -> None:
        self.file_name = file_name
        self.file_content = content

    # ── Submit ──────────────────────────────────────────────────────────────

    def validate(self) -> engine.SubmitCheck:
        return engine.validate_before_submit(
            self.requirements,
            self.state,
            self.client_price_input,
            self.has_existing_file,
            self.file_content,
        )

    def submit(self) -> bool:
        check = self.validate()
        if not check.ok:
            self.notify("error", check.message)
            return False

        try:
            self.gateway.save_approval_decisions(
                self.request_id, engine.decisions_payload(self.requirements, self.state),
            )
        except GatewayError as exc:
            logger.error(
                "Approval batch failed for request %s: %s", self.request_id, exc,
                extra={"project_request_id": self.request_id},
            )
            self.notify("error", MSG_APPROVALS_FAILED)
            return False

        was_update = self.existing_quotation is not None
        try:
            body = self.gateway.save_client_quotation(
                self.request_id,
                client_price=f"{check.client_price:.2f}",
                date_quotation_client=self._today().isoformat(),
                observations=self.observations,
                file_name=self.file_name,
                file_content=self.file_content,
            )
        except GatewayError as exc:
            logger.error(
                "Client quotation save failed for request %s: %s", self.request_id, exc,
                extra={"project_request_id": self.request_id},
            )
            self.notify("error", MSG_SAVE_FAILED)
            return False

        self.existing_quotation = (body or {}).get("quotation") or self.existing_quotation
        self.file_name = None
        self.file_content = None
        self.notify("success", MSG_UPDATED if was_update else MSG_CREATED)
        return True
