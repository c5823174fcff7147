"""
Installment Engine for real-estate payment flow proposals.
Keeps percentage/value representations in sync, splits components into exact-cent
installments and resolves the full payment schedule.

All arithmetic is performed in BRL. Invalid numeric input degrades to zero;
hard validation only happens when a proposal is submitted.
"""
import math
import re
from datetime import date
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import List, Optional, Tuple, TypeVar

from dateutil.relativedelta import relativedelta

from app.core.logger import logger
from app.proposta.schemas import (
    ComponentResult,
    Currency,
    FlowResult,
    FlowStatus,
    FlowTimeline,
    PaymentFlowData,
    PaymentShare,
    PaymentType,
    ScheduledInstallment,
)

ShareT = TypeVar("ShareT", bound=PaymentShare)

_NUMERIC_PREFIX = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")
_NON_DIGITS = re.compile(r"[^0-9]")

# Total percentage considered "closed" and the tolerance before warning
CLOSED_RANGE = (99.0, 101.0)
WARNING_TOLERANCE = 5.0

MONTHS_BETWEEN = {
    "monthly": 1,
    "semiannual_reinforcement": 6,
    "annual_reinforcement": 12,
}


def to_cents(amount: float) -> int:
    """Rounds an amount half-up to integer cents. Non-finite input becomes 0."""
    try:
        return int(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP) * 100)
    except (InvalidOperation, ValueError):
        return 0


def from_cents(cents: int) -> float:
    return cents / 100


def value_from_percentage(percentage: float, property_value: float) -> float:
    if property_value <= 0:
        return 0.0
    return property_value * percentage / 100


def percentage_from_value(value: float, property_value: float) -> float:
    if property_value <= 0:
        return 0.0
    return value / property_value * 100


def resolve_amount(component: PaymentShare, property_value: float) -> float:
    """Amount of a component read from its authoritative field."""
    if component.type == PaymentType.PERCENTAGE:
        return value_from_percentage(component.percentage, property_value)
    return component.value


def convert_representation(component: ShareT, target_type: PaymentType, property_value: float) -> ShareT:
    """
    Makes `target_type` authoritative and recomputes the other field from it.

    value = propertyValue * percentage / 100
    percentage = value / propertyValue * 100 (0 when propertyValue <= 0)

    Returns a copy; due date and any other field are preserved.
    """
    if target_type == PaymentType.PERCENTAGE:
        update = {
            "type": target_type,
            "value": value_from_percentage(component.percentage, property_value),
        }
    else:
        update = {
            "type": target_type,
            "percentage": percentage_from_value(component.value, property_value),
        }
    return component.model_copy(update=update)


def parse_percentage_input(raw_input: Optional[str]) -> float:
    """
    Reads the leading number of a free-form string, like a browser's parseFloat.
    Accepts a decimal comma. Anything unparseable is 0.
    """
    if raw_input is None:
        return 0.0
    text = str(raw_input).strip().replace(",", ".")
    match = _NUMERIC_PREFIX.match(text)
    if not match:
        return 0.0
    parsed = float(match.group(0))
    return parsed if math.isfinite(parsed) else 0.0


def parse_currency_input(raw_input: Optional[str]) -> float:
    """
    Reads a typed currency string as a stream of cents.
    "12345" -> 123.45, "R$ 1.369,52" -> 1369.52
    """
    digits = _NON_DIGITS.sub("", raw_input or "")
    if not digits:
        return 0.0
    return from_cents(int(digits))


def set_from_percentage_input(raw_input: Optional[str], property_value: float) -> Tuple[float, float]:
    """Returns (percentage, value) for a typed percentage."""
    percentage = parse_percentage_input(raw_input)
    return percentage, value_from_percentage(percentage, property_value)


def set_from_value_input(raw_input: Optional[str], property_value: float) -> Tuple[float, float]:
    """Returns (value, percentage) for a typed currency amount."""
    value = parse_currency_input(raw_input)
    return value, percentage_from_value(value, property_value)


def divide_into_installments(total: float, count: int) -> List[float]:
    """
    Splits `total` into `count` installments rounded down to the cent.
    The residual goes entirely to the last installment so the sum is exact.

    divide_into_installments(100.00, 3) -> [33.33, 33.33, 33.34]
    """
    if count <= 0:
        return []

    total_cents = to_cents(total)
    base = total_cents // count
    cents = [base] * count
    cents[-1] += total_cents - base * count

    return [from_cents(c) for c in cents]


def resolve_currency_conversion(amount_in_base: float, currency: Currency) -> float:
    """Converts a BRL amount to the display currency. Never touches stored amounts."""
    if currency.rate <= 0:
        return amount_in_base
    return amount_in_base / currency.rate


def build_due_dates(first_due_date: Optional[date], count: int, months_between: int) -> List[Optional[date]]:
    if first_due_date is None:
        return [None] * count
    return [first_due_date + relativedelta(months=months_between * i) for i in range(count)]


def _resolve_component(
    label: str,
    component: Optional[PaymentShare],
    property_value: float,
    currency: Currency,
    count: int = 1,
    months_between: int = 1,
) -> Optional[ComponentResult]:
    if component is None or count <= 0:
        return None

    total = resolve_amount(component, property_value)
    if total <= 0:
        return None

    amounts = divide_into_installments(total, count)
    due_dates = build_due_dates(component.first_due_date, count, months_between)
    value = from_cents(sum(to_cents(a) for a in amounts))

    return ComponentResult(
        label=label,
        value=value,
        percentage=percentage_from_value(value, property_value),
        count=count,
        installment_value=amounts[0],
        display_value=resolve_currency_conversion(value, currency),
        installments=[
            ScheduledInstallment(number=i + 1, amount=amount, due_date=due)
            for i, (amount, due) in enumerate(zip(amounts, due_dates))
        ],
    )


def _build_timeline(result: FlowResult, data: PaymentFlowData) -> Optional[FlowTimeline]:
    """Splits the paid total around the delivery date. Keys and undated payments count before delivery."""
    if data.delivery_date is None:
        return None

    until_cents = 0
    after_cents = 0
    for name in ("down_payment", "ato", "construction_start_payment", "monthly",
                 "semiannual_reinforcement", "annual_reinforcement", "keys_payment"):
        component: Optional[ComponentResult] = getattr(result, name)
        if component is None:
            continue
        for installment in component.installments:
            after = (
                name != "keys_payment"
                and installment.due_date is not None
                and installment.due_date > data.delivery_date
            )
            if after:
                after_cents += to_cents(installment.amount)
            else:
                until_cents += to_cents(installment.amount)

    until_delivery = from_cents(until_cents)
    after_delivery = from_cents(after_cents)
    return FlowTimeline(
        until_delivery=until_delivery,
        after_delivery=after_delivery,
        percentage_until_delivery=percentage_from_value(until_delivery, data.property_value),
        percentage_after_delivery=percentage_from_value(after_delivery, data.property_value),
    )


def calculate_flow(data: PaymentFlowData) -> FlowResult:
    """
    Resolves every component of a proposal into its installment schedule and
    totals it against the property value.
    """
    pv = data.property_value
    currency = data.currency
    down = data.down_payment

    components = {
        "down_payment": _resolve_component(
            "Entrada", down, pv, currency, count=max(down.installments, 1) if down else 1
        ),
        "ato": _resolve_component("Ato", down.ato if down else None, pv, currency),
        "construction_start_payment": _resolve_component(
            "Início da Obra", data.construction_start_payment, pv, currency
        ),
        "keys_payment": _resolve_component("Chaves", data.keys_payment, pv, currency),
    }

    for name, label in (("monthly", "Mensais"),
                        ("semiannual_reinforcement", "Reforços Semestrais"),
                        ("annual_reinforcement", "Reforços Anuais")):
        component = getattr(data, name)
        if component is not None and component.enabled:
            components[name] = _resolve_component(
                label, component, pv, currency, count=component.count, months_between=MONTHS_BETWEEN[name]
            )

    total_cents = sum(to_cents(c.value) for c in components.values() if c is not None)
    total_paid = from_cents(total_cents)
    total_percentage = percentage_from_value(total_paid, pv)

    warnings: List[str] = []
    if pv > 0:
        diff = abs(total_percentage - 100)
        if diff > WARNING_TOLERANCE:
            warnings.append(
                f"Total calculado: {total_percentage:.1f}% (diferença de {diff:.1f}% dos 100%)"
            )

    if CLOSED_RANGE[0] <= total_percentage <= CLOSED_RANGE[1]:
        status = FlowStatus.CLOSED
    elif total_percentage > CLOSED_RANGE[1]:
        status = FlowStatus.OVER
    else:
        status = FlowStatus.UNDER

    result = FlowResult(
        **components,
        total_paid=total_paid,
        total_percentage=total_percentage,
        remaining=from_cents(max(0, to_cents(pv) - total_cents)),
        status=status,
        is_valid=not warnings,
        warnings=warnings,
        currency=currency,
        display_total_paid=resolve_currency_conversion(total_paid, currency),
    )
    result.timeline = _build_timeline(result, data)

    logger.info(
        f"Flow calculated: property_value={pv}, total_paid={total_paid}, "
        f"total_percentage={total_percentage:.2f}, status={status.value}"
    )

    return result
