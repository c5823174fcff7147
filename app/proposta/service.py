"""
Persistence and export of payment flow proposals.
Proposals are stored as camelCase JSON and migrated every time they are read back.
"""
import json
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.logger import logger, audit_log
from app.core.utils import format_brl, format_percentage, format_date_br, format_brasilia_time
from app.proposta.engine import calculate_flow
from app.proposta.migration import migrate_legacy_proposal
from app.proposta.models import PaymentFlow
from app.proposta.schemas import ComponentResult, FlowResult, PaymentFlowData

RULER = "━" * 33
DOUBLE_RULER = "═" * 35


def save_proposal(db: Session, data: PaymentFlowData, user_id: str, correlation_id: str) -> PaymentFlow:
    """Persists a validated proposal for the given broker."""
    proposal = PaymentFlow(
        user_id=user_id,
        client_name=data.client_name.strip(),
        calculation_data=data.model_dump_json(by_alias=True),
    )

    db.add(proposal)
    db.commit()
    db.refresh(proposal)

    audit_log(
        action="proposal_saved",
        user=user_id,
        resource=f"payment_flow_id={proposal.id}",
        details={"correlation_id": correlation_id, "property_value": data.property_value}
    )
    logger.info(f"Proposal persisted: id={proposal.id}")

    return proposal


def list_proposals(db: Session, user_id: str) -> List[PaymentFlow]:
    return db.query(PaymentFlow).filter(
        PaymentFlow.user_id == user_id
    ).order_by(PaymentFlow.created_at.desc()).all()


def get_proposal(db: Session, proposal_id: str, user_id: str) -> Optional[PaymentFlow]:
    """Returns the proposal only when it belongs to the user."""
    return db.query(PaymentFlow).filter(
        PaymentFlow.id == proposal_id,
        PaymentFlow.user_id == user_id
    ).first()


def delete_proposal(db: Session, proposal_id: str, user_id: str, correlation_id: str) -> bool:
    proposal = get_proposal(db, proposal_id, user_id)
    if proposal is None:
        return False

    db.delete(proposal)
    db.commit()

    audit_log(
        action="proposal_deleted",
        user=user_id,
        resource=f"payment_flow_id={proposal_id}",
        details={"correlation_id": correlation_id}
    )
    return True


def load_flow_data(proposal: PaymentFlow) -> PaymentFlowData:
    """Parses the stored JSON, upgrading records saved in older formats."""
    raw = json.loads(proposal.calculation_data)
    return PaymentFlowData.model_validate(migrate_legacy_proposal(raw))


def _component_line(component: ComponentResult) -> str:
    return (
        f"   {component.count}x de R$ {format_brl(component.installment_value)}"
        f" ({format_percentage(component.percentage)})\n\n"
    )


def render_flow_txt(
    data: PaymentFlowData,
    result: FlowResult,
    broker_name: str,
    generated_at: Optional[datetime] = None,
) -> str:
    """Plain-text proposal shared with the client (WhatsApp/e-mail)."""
    generated_at = generated_at or datetime.now(timezone.utc)

    txt = f"{DOUBLE_RULER}\n"
    txt += "🏢 PROPOSTA DE PAGAMENTO - COMARC\n"
    txt += f"{DOUBLE_RULER}\n\n"

    txt += f"📅 Data: {format_brasilia_time(generated_at)}\n"
    txt += f"👤 Cliente: {data.client_name or 'Não informado'}\n\n"

    txt += f"{RULER}\n🏠 DADOS DO IMÓVEL\n{RULER}\n"
    txt += f"Construtora: {data.constructora or 'Não informado'}\n"
    txt += f"Empreendimento: {data.empreendimento or 'Não informado'}\n"
    txt += f"Unidade: {data.unidade or 'Não informado'}\n"
    txt += f"Área Privativa: {data.area_privativa or 'Não informado'}\n"
    txt += f"Entrega: {format_date_br(data.delivery_date)}\n"
    txt += f"Valor Total: R$ {format_brl(data.property_value)}\n\n"

    txt += f"{RULER}\n💰 CONDIÇÕES DE PAGAMENTO\n{RULER}\n\n"

    sections = (
        ("🤝", result.ato),
        ("🏁", result.down_payment),
        ("🏗️", result.construction_start_payment),
        ("📅", result.monthly),
        ("💎", result.semiannual_reinforcement),
        ("💎", result.annual_reinforcement),
        ("🔑", result.keys_payment),
    )
    for emoji, component in sections:
        if component is None:
            continue
        txt += f"{emoji} {component.label}\n"
        txt += _component_line(component)

    txt += f"{RULER}\n"
    txt += f"📊 TOTAL: R$ {format_brl(result.total_paid)} ({format_percentage(result.total_percentage)})\n"
    if result.currency.code != "BRL":
        txt += (
            f"   ≈ {result.currency.symbol} {format_brl(result.display_total_paid)}"
            f" (cotação {format_brl(result.currency.rate)})\n"
        )
    txt += f"{RULER}\n\n"

    if result.timeline is not None:
        txt += f"Até a entrega: R$ {format_brl(result.timeline.until_delivery)}"
        txt += f" ({format_percentage(result.timeline.percentage_until_delivery)})\n"
        txt += f"Após a entrega: R$ {format_brl(result.timeline.after_delivery)}"
        txt += f" ({format_percentage(result.timeline.percentage_after_delivery)})\n\n"

    txt += f"👔 Corretor: {broker_name}\n"
    return txt


def export_proposal_txt(proposal: PaymentFlow, broker_name: str) -> str:
    data = load_flow_data(proposal)
    return render_flow_txt(data, calculate_flow(data), broker_name)
