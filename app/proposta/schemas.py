"""
Pydantic schemas for payment flow proposals.
Fields are exposed in camelCase so persisted proposals keep their original JSON shape.
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaymentType(str, Enum):
    """Which of the two representations is authoritative for a component."""
    PERCENTAGE = "percentage"
    VALUE = "value"


class Currency(CamelModel):
    """Display currency. `rate` is how many BRL one unit of this currency is worth."""
    code: str = Field(..., min_length=3, max_length=3)
    symbol: str
    rate: float = Field(..., gt=0, description="BRL per unit of this currency")
    name: str


BRL = Currency(code="BRL", symbol="R$", rate=1.0, name="Real Brasileiro")

SUPPORTED_CURRENCIES: List[Currency] = [
    BRL,
    Currency(code="USD", symbol="$", rate=5.50, name="Dólar Americano"),
    Currency(code="EUR", symbol="€", rate=6.00, name="Euro"),
    Currency(code="GBP", symbol="£", rate=7.00, name="Libra Esterlina"),
]


def _blank_to_none(v: Any) -> Any:
    # Cleared date inputs arrive as empty strings
    if isinstance(v, str) and not v.strip():
        return None
    return v


class PaymentShare(CamelModel):
    """
    A payment expressed both as a share of the property value and as an amount.
    `type` tags the authoritative field; the other one is kept in sync.
    """
    type: PaymentType = PaymentType.PERCENTAGE
    percentage: float = 0.0
    value: float = 0.0
    first_due_date: Optional[date] = None

    @field_validator("first_due_date", mode="before")
    @classmethod
    def empty_date(cls, v: Any) -> Any:
        return _blank_to_none(v)


class DownPayment(PaymentShare):
    """Entrada, optionally split in installments, with an optional Ato."""
    installments: int = Field(default=1, le=120)
    ato: Optional[PaymentShare] = None


class InstallmentComponent(PaymentShare):
    """Recurring component; `value`/`percentage` describe the total split over `count`."""
    enabled: bool = True
    count: int = Field(default=0, le=600)


class PaymentFlowData(CamelModel):
    """Proposal state as edited by the broker and persisted on save."""
    property_value: float = 0.0
    client_name: str = ""
    delivery_date: Optional[date] = None
    constructora: Optional[str] = None
    empreendimento: Optional[str] = None
    unidade: Optional[str] = None
    area_privativa: Optional[str] = None
    currency: Currency = Field(default_factory=lambda: BRL.model_copy())
    down_payment: Optional[DownPayment] = None
    construction_start_payment: Optional[PaymentShare] = None
    monthly: Optional[InstallmentComponent] = None
    semiannual_reinforcement: Optional[InstallmentComponent] = None
    annual_reinforcement: Optional[InstallmentComponent] = None
    keys_payment: Optional[PaymentShare] = None

    @field_validator("delivery_date", mode="before")
    @classmethod
    def empty_delivery_date(cls, v: Any) -> Any:
        return _blank_to_none(v)


class ScheduledInstallment(CamelModel):
    number: int = Field(..., ge=1)
    amount: float
    due_date: Optional[date] = None


class ComponentResult(CamelModel):
    """Resolved component: total, share of the property and its installments."""
    label: str
    value: float
    percentage: float
    count: int
    installment_value: float
    display_value: float = Field(..., description="Total converted to the display currency")
    installments: List[ScheduledInstallment]


class FlowTimeline(CamelModel):
    until_delivery: float
    after_delivery: float
    percentage_until_delivery: float
    percentage_after_delivery: float


class FlowStatus(str, Enum):
    CLOSED = "closed"
    OVER = "over"
    UNDER = "under"


class FlowResult(CamelModel):
    """Fully resolved payment schedule of a proposal."""
    down_payment: Optional[ComponentResult] = None
    ato: Optional[ComponentResult] = None
    construction_start_payment: Optional[ComponentResult] = None
    monthly: Optional[ComponentResult] = None
    semiannual_reinforcement: Optional[ComponentResult] = None
    annual_reinforcement: Optional[ComponentResult] = None
    keys_payment: Optional[ComponentResult] = None
    total_paid: float
    total_percentage: float
    remaining: float
    status: FlowStatus
    is_valid: bool
    warnings: List[str]
    currency: Currency
    display_total_paid: float
    timeline: Optional[FlowTimeline] = None


class CalculationResponse(CamelModel):
    result: FlowResult
    valid: bool = Field(..., description="Whether the proposal can be saved")


class RepresentationRequest(CamelModel):
    component: PaymentShare
    target_type: PaymentType
    property_value: float


class RawInputRequest(CamelModel):
    raw_input: str = ""
    property_value: float


class ShareResponse(CamelModel):
    percentage: float
    value: float


class InstallmentsRequest(CamelModel):
    total: float = Field(..., ge=0)
    count: int = Field(..., le=1000)


class InstallmentsResponse(CamelModel):
    total: float
    count: int
    installments: List[float]


class ProposalSummary(CamelModel):
    id: str
    client_name: str
    property_value: float
    created_at: datetime


class ProposalResponse(CamelModel):
    id: str
    client_name: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    calculation_data: PaymentFlowData
