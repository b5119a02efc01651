"""
Quotation Aggregation & Approval Engine.

Pure functions over requirements and an immutable approval state; no I/O.

    state = ApprovalState.from_quotations(requirements)
    state = state.set_approval(qid, True)          # fresh state every time
    report = compute_totals(requirements, state)  # approved quotations only
    price = suggest_client_price(report)          # "350.00"
    check = validate_before_submit(requirements, state, "$350.00", False, upload)
    if check.ok:
        rows = decisions_payload(requirements, state)

Requirements are anything exposing ``.id``, ``.requirement_name`` and
``.quotations``; quotations expose ``.id``, ``.company_name``, the three cost
fields, ``.price``, ``.is_client_approved`` and ``.non_approval_reason``.
``RequirementLine`` / ``QuotationLine`` are the detached versions built from
the API payload or from ORM rows.

Quotation ids are participant ids (``project_request_companies.id``).
Amounts are ``Decimal``; missing amounts count as zero.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from types import MappingProxyType

from conecta.utils.money import ZERO, format_amount, money_str, parse_money, to_decimal

# ── Submit check names ──────────────────────────────────────────────────────

CHECK_OK = "ok"
MISSING_DECISION = "missing_decision"
MISSING_REJECTION_REASON = "missing_rejection_reason"
NO_APPROVED_QUOTATIONS = "no_approved_quotations"
INVALID_CLIENT_PRICE = "invalid_client_price"
MISSING_FILE = "missing_file"

CHECK_MESSAGES = {
    MISSING_DECISION: "Debe aprobar o rechazar todas las cotizaciones antes de continuar",
    MISSING_REJECTION_REASON: "Debe ingresar un motivo para todas las cotizaciones rechazadas",
    NO_APPROVED_QUOTATIONS: "Debe seleccionar al menos una cotización",
    INVALID_CLIENT_PRICE: "Debe ingresar un precio válido para el cliente",
    MISSING_FILE: "Debe seleccionar un archivo de cotización",
}


# ── Input views ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class QuotationLine:
    id: int
    company_id: int | None = None
    company_name: str = ""
    material_cost: Decimal | None = None
    direct_cost: Decimal | None = None
    indirect_cost: Decimal | None = None
    price: Decimal | None = None
    is_client_approved: bool | None = None
    non_approval_reason: str | None = None
    additional_details: str | None = None
    segments: tuple = ()

    @property
    def total_cost(self) -> Decimal:
        return (
            to_decimal(self.material_cost)
            + to_decimal(self.direct_cost)
            + to_decimal(self.indirect_cost)
        )

    @classmethod
    def from_dict(cls, data: dict) -> "QuotationLine":
        def amount(key):
            value = data.get(key)
            return None if value is None else to_decimal(value)

        return cls(
            id=data["id"],
            company_id=data.get("company_id"),
            company_name=data.get("company_name") or "",
            material_cost=amount("material_cost"),
            direct_cost=amount("direct_cost"),
            indirect_cost=amount("indirect_cost"),
            price=amount("price"),
            is_client_approved=data.get("is_client_approved"),
            non_approval_reason=data.get("non_approval_reason"),
            additional_details=data.get("additional_details"),
            segments=tuple(data.get("segments") or ()),
        )


@dataclass(frozen=True)
class RequirementLine:
    id: int
    requirement_name: str = ""
    quotations: tuple = ()

    @classmethod
    def from_dict(cls, data: dict) -> "RequirementLine":
        return cls(
            id=data["id"],
            requirement_name=data.get("requirement_name") or "",
            quotations=tuple(QuotationLine.from_dict(q) for q in data.get("quotations") or ()),
        )


def requirements_from_json(payload) -> list[RequirementLine]:
    return [RequirementLine.from_dict(item) for item in payload or ()]


def iter_quotations(requirements):
    for requirement in requirements:
        yield from requirement.quotations


# ── Approval state ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Decision:
    """Operator decision for one quotation.  ``is_approved`` None = undecided."""

    is_approved: bool | None = None
    rejection_reason: str = ""

    @property
    def is_decided(self) -> bool:
        return self.is_approved is not None


class ApprovalState:
    """Immutable mapping quotation_id → Decision.

    Every update returns a new state; the original is never modified.
    Quotations without an entry are undecided.
    """

    __slots__ = ("_decisions",)

    def __init__(self, decisions=None):
        self._decisions = MappingProxyType(dict(decisions or {}))

    @classmethod
    def from_quotations(cls, requirements) -> "ApprovalState":
        """Seed from persisted decisions; NULL ``is_client_approved`` stays undecided."""
        decisions = {}
        for quotation in iter_quotations(requirements):
            if quotation.is_client_approved is None:
                continue
            decisions[quotation.id] = Decision(
                is_approved=bool(quotation.is_client_approved),
                rejection_reason=quotation.non_approval_reason or "",
            )
        return cls(decisions)

    def get(self, quotation_id) -> Decision:
        return self._decisions.get(quotation_id, Decision())

    def is_approved(self, quotation_id) -> bool:
        return self.get(quotation_id).is_approved is True

    def set_approval(self, quotation_id, approved: bool) -> "ApprovalState":
        """Record approve/reject.  A typed rejection reason is kept either way."""
        decisions = dict(self._decisions)
        decisions[quotation_id] = replace(self.get(quotation_id), is_approved=bool(approved))
        return ApprovalState(decisions)

    def set_rejection_reason(self, quotation_id, reason: str) -> "ApprovalState":
        decisions = dict(self._decisions)
        decisions[quotation_id] = replace(self.get(quotation_id), rejection_reason=reason or "")
        return ApprovalState(decisions)

    def items(self):
        return self._decisions.items()

    def __contains__(self, quotation_id) -> bool:
        return quotation_id in self._decisions

    def __len__(self) -> int:
        return len(self._decisions)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ApprovalState):
            return NotImplemented
        return dict(self._decisions) == dict(other._decisions)

    def __repr__(self) -> str:
        return f"ApprovalState({dict(self._decisions)!r})"


# ── Totals ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Totals:
    material_cost: Decimal = ZERO
    direct_cost: Decimal = ZERO
    indirect_cost: Decimal = ZERO
    price: Decimal = ZERO

    @property
    def total_cost(self) -> Decimal:
        return self.material_cost + self.direct_cost + self.indirect_cost

    def add(self, quotation) -> "Totals":
        return Totals(
            material_cost=self.material_cost + to_decimal(quotation.material_cost),
            direct_cost=self.direct_cost + to_decimal(quotation.direct_cost),
            indirect_cost=self.indirect_cost + to_decimal(quotation.indirect_cost),
            price=self.price + to_decimal(quotation.price),
        )

    def __add__(self, other: "Totals") -> "Totals":
        return Totals(
            material_cost=self.material_cost + other.material_cost,
            direct_cost=self.direct_cost + other.direct_cost,
            indirect_cost=self.indirect_cost + other.indirect_cost,
            price=self.price + other.price,
        )

    def to_dict(self) -> dict:
        return {
            "material_cost": money_str(self.material_cost),
            "direct_cost": money_str(self.direct_cost),
            "indirect_cost": money_str(self.indirect_cost),
            "total_cost": money_str(self.total_cost),
            "price": money_str(self.price),
        }


@dataclass(frozen=True)
class TotalsReport:
    by_requirement: dict = field(default_factory=dict)
    overall: Totals = field(default_factory=Totals)
    approved_count: int = 0

    def to_dict(self) -> dict:
        return {
            "by_requirement": {str(k): v.to_dict() for k, v in self.by_requirement.items()},
            "overall": self.overall.to_dict(),
            "approved_count": self.approved_count,
        }


def compute_totals(requirements, state: ApprovalState) -> TotalsReport:
    """Sum costs and price per requirement over approved quotations only."""
    by_requirement = {}
    overall = Totals()
    approved = 0
    for requirement in requirements:
        subtotal = Totals()
        for quotation in requirement.quotations:
            if state.is_approved(quotation.id):
                subtotal = subtotal.add(quotation)
                approved += 1
        by_requirement[requirement.id] = subtotal
        overall = overall + subtotal
    return TotalsReport(by_requirement=by_requirement, overall=overall, approved_count=approved)


def suggest_client_price(report: TotalsReport) -> str:
    """Overall approved price as operator input text (``"1,350.00"``)."""
    return format_amount(report.overall.price)


# ── Submit validation ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class SubmitCheck:
    """Discriminated validation outcome.  ``code`` is ``ok`` or a failure name."""

    code: str = CHECK_OK
    message: str = ""
    quotation_ids: tuple = ()
    client_price: Decimal | None = None

    @property
    def ok(self) -> bool:
        return self.code == CHECK_OK

    def to_dict(self) -> dict:
        result = {"code": self.code, "message": self.message}
        if self.quotation_ids:
            result["quotation_ids"] = list(self.quotation_ids)
        return result


def _fail(code: str, quotation_ids=()) -> SubmitCheck:
    return SubmitCheck(code=code, message=CHECK_MESSAGES[code], quotation_ids=tuple(quotation_ids))


def validate_before_submit(
    requirements,
    state: ApprovalState,
    client_price_input,
    has_existing_file: bool,
    new_file=None,
) -> SubmitCheck:
    """Ordered pre-submit checks; returns the first failure, never raises.

    1. missing_decision          — a quotation has no explicit decision
    2. missing_rejection_reason  — a rejected quotation has a blank reason
    3. no_approved_quotations    — nothing approved
    4. invalid_client_price      — price unreadable or ≤ 0
    5. missing_file              — no stored file and no upload
    """
    quotations = list(iter_quotations(requirements))

    undecided = [q.id for q in quotations if not state.get(q.id).is_decided]
    if undecided:
        return _fail(MISSING_DECISION, undecided)

    blank_reason = [
        q.id for q in quotations
        if state.get(q.id).is_approved is False
        and not (state.get(q.id).rejection_reason or "").strip()
    ]
    if blank_reason:
        return _fail(MISSING_REJECTION_REASON, blank_reason)

    if not any(state.is_approved(q.id) for q in quotations):
        return _fail(NO_APPROVED_QUOTATIONS)

    price = parse_money(client_price_input)
    if price is None or price <= 0:
        return _fail(INVALID_CLIENT_PRICE)

    if not has_existing_file and not new_file:
        return _fail(MISSING_FILE)

    return SubmitCheck(client_price=price)


def decisions_payload(requirements, state: ApprovalState) -> list[dict]:
    """Bulk-upsert rows for every decided quotation; reason is None when approved."""
    rows = []
    for quotation in iter_quotations(requirements):
        decision = state.get(quotation.id)
        if not decision.is_decided:
            continue
        rows.append({
            "quotation_id": quotation.id,
            "is_approved": decision.is_approved,
            "rejection_reason": None if decision.is_approved else decision.rejection_reason.strip(),
        })
    return rows
