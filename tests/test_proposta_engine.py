"""
Unit tests for the Installment Engine.
Validates representation sync, typed input parsing, cent-exact splits and flow resolution.
"""
from datetime import date
from typing import Any, Dict

import pytest

from app.proposta.engine import (
    calculate_flow,
    convert_representation,
    divide_into_installments,
    parse_currency_input,
    resolve_currency_conversion,
    set_from_percentage_input,
    set_from_value_input,
)
from app.proposta.schemas import (
    BRL,
    SUPPORTED_CURRENCIES,
    DownPayment,
    FlowStatus,
    PaymentFlowData,
    PaymentShare,
    PaymentType,
)

USD = next(c for c in SUPPORTED_CURRENCIES if c.code == "USD")


def _cents(amount: float) -> int:
    return round(amount * 100)


def test_divide_places_residual_on_last_installment():
    assert divide_into_installments(100.00, 3) == [33.33, 33.33, 33.34]


@pytest.mark.parametrize("total, count", [
    (100.00, 3),
    (50000.00, 3),
    (2739.05, 7),
    (0.01, 3),
    (1234567.89, 120),
    (0.0, 5),
])
def test_divide_sums_exactly_to_total(total: float, count: int):
    """Installments always add up to the total to the cent."""
    amounts = divide_into_installments(total, count)

    assert len(amounts) == count
    assert sum(_cents(a) for a in amounts) == _cents(total)
    # Every installment but the last is identical
    assert len(set(amounts[:-1])) <= 1
    assert _cents(amounts[-1]) >= _cents(amounts[0])
    assert _cents(amounts[-1]) - _cents(amounts[0]) < count


def test_divide_never_adjusts_first_installment():
    amounts = divide_into_installments(0.05, 3)
    assert amounts == [0.01, 0.01, 0.03]


@pytest.mark.parametrize("count", [0, -1, -12])
def test_divide_with_no_installments(count: int):
    assert divide_into_installments(1500.0, count) == []


def test_convert_percentage_to_value():
    component = PaymentShare(type=PaymentType.VALUE, percentage=12.5, value=0.0, first_due_date=date(2025, 3, 1))

    converted = convert_representation(component, PaymentType.PERCENTAGE, 480000.0)

    assert converted.type == PaymentType.PERCENTAGE
    assert converted.value == pytest.approx(60000.0)
    assert converted.percentage == 12.5
    assert converted.first_due_date == date(2025, 3, 1)
    # The original is not mutated
    assert component.value == 0.0


def test_convert_round_trip_preserves_percentage():
    component = PaymentShare(type=PaymentType.PERCENTAGE, percentage=7.3)

    as_value = convert_representation(component, PaymentType.PERCENTAGE, 345678.9)
    back = convert_representation(as_value, PaymentType.VALUE, 345678.9)

    assert back.type == PaymentType.VALUE
    assert back.percentage == pytest.approx(7.3)


@pytest.mark.parametrize("property_value", [0.0, -100.0])
def test_convert_without_property_value_degrades_to_zero(property_value: float):
    component = PaymentShare(type=PaymentType.PERCENTAGE, percentage=10.0, value=5000.0)

    to_value = convert_representation(component, PaymentType.VALUE, property_value)
    to_percentage = convert_representation(component, PaymentType.PERCENTAGE, property_value)

    assert to_value.percentage == 0.0
    assert to_value.value == 5000.0
    assert to_percentage.value == 0.0


def test_convert_keeps_down_payment_fields():
    ato = PaymentShare(type=PaymentType.VALUE, value=10000.0)
    down = DownPayment(type=PaymentType.VALUE, value=50000.0, installments=4, ato=ato)

    converted = convert_representation(down, PaymentType.VALUE, 500000.0)

    assert isinstance(converted, DownPayment)
    assert converted.installments == 4
    assert converted.ato == ato
    assert converted.percentage == pytest.approx(10.0)


@pytest.mark.parametrize("raw, expected", [
    ("12.5", 12.5),
    ("12,5", 12.5),
    ("7.", 7.0),
    ("3%", 3.0),
    ("  8 ", 8.0),
    ("", 0.0),
    ("-", 0.0),
    ("abc", 0.0),
    (None, 0.0),
])
def test_percentage_input_tolerates_partial_input(raw: Any, expected: float):
    percentage, _ = set_from_percentage_input(raw, 200000.0)
    assert percentage == expected


def test_percentage_input_computes_value():
    percentage, value = set_from_percentage_input("10", 200000.0)
    assert percentage == 10.0
    assert value == pytest.approx(20000.0)


@pytest.mark.parametrize("raw, expected", [
    ("136952", 1369.52),
    ("12345", 123.45),
    ("R$ 1.369,52", 1369.52),
    ("5", 0.05),
    ("", 0.0),
    ("R$ ", 0.0),
])
def test_value_input_reads_digits_as_cents(raw: str, expected: float):
    assert parse_currency_input(raw) == expected


def test_value_input_computes_percentage():
    value, percentage = set_from_value_input("136952", 13695.20)
    assert value == 1369.52
    assert percentage == pytest.approx(10.0)


def test_value_input_without_property_value():
    value, percentage = set_from_value_input("136952", 0)
    assert value == 1369.52
    assert percentage == 0.0


def test_currency_conversion_is_presentation_only():
    amount = 5500.0
    assert resolve_currency_conversion(amount, USD) == pytest.approx(1000.0)
    assert resolve_currency_conversion(amount, BRL) == amount
    assert amount == 5500.0


def test_full_flow_closes_at_one_hundred_percent(proposal_payload: Dict[str, Any]):
    data = PaymentFlowData.model_validate(proposal_payload)

    result = calculate_flow(data)

    assert result.total_paid == 500000.0
    assert result.total_percentage == pytest.approx(100.0)
    assert result.status == FlowStatus.CLOSED
    assert result.warnings == []
    assert result.is_valid is True
    assert result.remaining == 0.0

    assert [i.amount for i in result.down_payment.installments] == [16666.66, 16666.66, 16666.68]
    assert result.down_payment.installments[2].due_date == date(2025, 3, 10)
    assert result.ato.value == 10000.0
    assert result.ato.percentage == pytest.approx(2.0)
    assert result.monthly.count == 100
    assert result.monthly.installment_value == 2000.0
    assert result.monthly.installments[-1].due_date == date(2033, 5, 10)
    assert result.annual_reinforcement.value == 40000.0
    assert result.keys_payment.value == 140000.0
    assert result.keys_payment.installments[0].due_date is None


def test_reinforcement_due_dates(proposal_payload: Dict[str, Any]):
    result = calculate_flow(PaymentFlowData.model_validate(proposal_payload))

    assert [i.due_date for i in result.semiannual_reinforcement.installments] == [
        date(2025, 6, 10), date(2025, 12, 10), date(2026, 6, 10),
        date(2026, 12, 10), date(2027, 6, 10), date(2027, 12, 10),
    ]
    assert [i.due_date for i in result.annual_reinforcement.installments] == [
        date(2025, 12, 10), date(2026, 12, 10), date(2027, 12, 10), date(2028, 12, 10),
    ]


def test_monthly_due_dates_clamp_to_month_end():
    data = PaymentFlowData(
        property_value=3000.0,
        monthly={"enabled": True, "count": 3, "type": "value", "value": 3000.0, "first_due_date": "2025-01-31"},
    )

    result = calculate_flow(data)

    assert [i.due_date for i in result.monthly.installments] == [
        date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31),
    ]


def test_timeline_splits_around_delivery(proposal_payload: Dict[str, Any]):
    result = calculate_flow(PaymentFlowData.model_validate(proposal_payload))

    assert result.timeline is not None
    assert result.timeline.until_delivery == 360000.0
    assert result.timeline.after_delivery == 140000.0
    assert result.timeline.percentage_until_delivery == pytest.approx(72.0)


def test_incomplete_flow_warns():
    data = PaymentFlowData(
        property_value=100000.0,
        client_name="João",
        down_payment=DownPayment(type=PaymentType.PERCENTAGE, percentage=10),
    )

    result = calculate_flow(data)

    assert result.status == FlowStatus.UNDER
    assert result.is_valid is False
    assert result.remaining == 90000.0
    assert result.warnings == ["Total calculado: 10.0% (diferença de 90.0% dos 100%)"]
    assert result.timeline is None


def test_flow_above_one_hundred_percent():
    data = PaymentFlowData(
        property_value=100000.0,
        down_payment=DownPayment(type=PaymentType.VALUE, value=60000),
        keys_payment=PaymentShare(type=PaymentType.VALUE, value=45000),
    )

    result = calculate_flow(data)

    assert result.status == FlowStatus.OVER
    assert result.total_percentage == pytest.approx(105.0)
    assert result.remaining == 0.0


def test_disabled_components_are_ignored(proposal_payload: Dict[str, Any]):
    proposal_payload["monthly"]["enabled"] = False

    result = calculate_flow(PaymentFlowData.model_validate(proposal_payload))

    assert result.monthly is None
    assert result.total_paid == 300000.0


def test_display_currency_conversion(proposal_payload: Dict[str, Any]):
    proposal_payload["currency"] = USD.model_dump(by_alias=True)

    result = calculate_flow(PaymentFlowData.model_validate(proposal_payload))

    assert result.total_paid == 500000.0
    assert result.display_total_paid == pytest.approx(500000.0 / 5.5)
    assert result.keys_payment.display_value == pytest.approx(140000.0 / 5.5)


def test_zero_property_value_never_fails():
    data = PaymentFlowData(
        property_value=0,
        down_payment=DownPayment(type=PaymentType.PERCENTAGE, percentage=10),
        keys_payment=PaymentShare(type=PaymentType.VALUE, value=1000),
    )

    result = calculate_flow(data)

    assert result.down_payment is None
    assert result.keys_payment.percentage == 0.0
    assert result.total_percentage == 0.0
    assert result.warnings == []
