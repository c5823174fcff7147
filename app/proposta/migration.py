"""
Backward compatibility for persisted proposals and submission-time validation.
Proposals saved before the Ato and due date fields existed are upgraded on load.
"""
import copy
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from app.core.logger import logger
from app.proposta.schemas import PaymentFlowData, PaymentType

SINGLE_COMPONENTS = ("constructionStartPayment", "keysPayment")
RECURRING_COMPONENTS = ("monthly", "semiannualReinforcement", "annualReinforcement")

# Keys used for reinforcements by the oldest record shape
RENAMED_COMPONENTS = {
    "semiannual": "semiannualReinforcement",
    "annual": "annualReinforcement",
}


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return 0.0


def _lift_amount(amount: Any, property_value: float) -> Dict[str, Any]:
    """Turns a bare number (oldest format) into a value-typed component."""
    value = _as_number(amount)
    return {
        "type": PaymentType.VALUE.value,
        "value": value,
        "percentage": value / property_value * 100 if property_value > 0 else 0.0,
    }


def _migrate_component(raw: Any, property_value: float, recurring: bool) -> Optional[Dict[str, Any]]:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return _lift_amount(raw, property_value) if raw else None
    if not isinstance(raw, dict) or not raw:
        return None

    component = dict(raw)
    if recurring and "type" not in component and component.get("count") and component.get("value"):
        # Untyped recurring components stored the amount of each installment
        total = _as_number(component["count"]) * _as_number(component["value"])
        component.update(_lift_amount(total, property_value))
    component["firstDueDate"] = component.get("firstDueDate") or None
    return component


def migrate_legacy_proposal(raw_data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Upgrades a persisted proposal to the current format.

    Already migrated data (downPayment carries an `ato` key) is returned untouched,
    so applying the migration twice is a no-op. Unknown keys are preserved.
    """
    down_payment = raw_data.get("downPayment")
    if isinstance(down_payment, dict) and "ato" in down_payment:
        return raw_data

    migrated = copy.deepcopy(raw_data)
    property_value = _as_number(raw_data.get("propertyValue"))

    if isinstance(down_payment, dict):
        down = copy.deepcopy(down_payment)
    elif isinstance(down_payment, (int, float)) and not isinstance(down_payment, bool):
        down = _lift_amount(down_payment, property_value)
    else:
        down = {}
    down["firstDueDate"] = down.get("firstDueDate") or raw_data.get("constructionStartDate") or None
    down["ato"] = None
    migrated["downPayment"] = down

    for old_key, new_key in RENAMED_COMPONENTS.items():
        if old_key in migrated and migrated.get(new_key) is None:
            migrated[new_key] = migrated.pop(old_key)

    for key in SINGLE_COMPONENTS:
        migrated[key] = _migrate_component(migrated.get(key), property_value, recurring=False)
    for key in RECURRING_COMPONENTS:
        migrated[key] = _migrate_component(migrated.get(key), property_value, recurring=True)

    logger.info(f"Legacy proposal migrated: client={raw_data.get('clientName', '')!r}")
    return migrated


def validate_proposal(data: Union[PaymentFlowData, Dict[str, Any]]) -> bool:
    """
    All-or-nothing check run before a proposal is saved.
    Raw dicts are migrated and parsed first; unparseable data is invalid.
    """
    if isinstance(data, dict):
        # Migration backfills an empty down payment; absence is checked on the raw record
        if data.get("downPayment") is None:
            return False
        try:
            data = PaymentFlowData.model_validate(migrate_legacy_proposal(data))
        except ValidationError:
            return False

    if data.property_value <= 0:
        return False

    if not data.client_name or not data.client_name.strip():
        return False

    if data.down_payment is None:
        return False

    ato = data.down_payment.ato
    if ato is not None:
        if ato.type == PaymentType.PERCENTAGE and ato.percentage <= 0:
            return False
        if ato.type == PaymentType.VALUE and ato.value <= 0:
            return False

    return True
