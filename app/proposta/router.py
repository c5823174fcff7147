"""
FastAPI Router for the payment flow calculator and saved proposals.
"""
from uuid import uuid4
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Header, Response
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from app.auth.dependencies import get_current_user
from app.auth.models import User
from app.core.database import get_db
from app.core.logger import get_logger_with_correlation
from app.proposta.engine import (
    calculate_flow,
    convert_representation,
    divide_into_installments,
    set_from_percentage_input,
    set_from_value_input,
)
from app.proposta.migration import validate_proposal
from app.proposta.schemas import (
    SUPPORTED_CURRENCIES,
    CalculationResponse,
    Currency,
    InstallmentsRequest,
    InstallmentsResponse,
    PaymentFlowData,
    PaymentShare,
    ProposalResponse,
    ProposalSummary,
    RawInputRequest,
    RepresentationRequest,
    ShareResponse,
)
from app.proposta.service import (
    delete_proposal,
    export_proposal_txt,
    get_proposal,
    list_proposals,
    load_flow_data,
    save_proposal,
)

router = APIRouter(tags=["Proposals"])


@router.get("/currencies", response_model=List[Currency])
def list_currencies() -> List[Currency]:
    """Preset display currencies. Rates are BRL per unit and may be overridden per proposal."""
    return SUPPORTED_CURRENCIES


@router.post("/calculate", response_model=CalculationResponse)
def calculate(data: PaymentFlowData) -> CalculationResponse:
    """
    Resolves the payment schedule of a proposal.

    **Returns:**
    - Every component with its installments and due dates
    - Total paid and its share of the property value
    - Warnings when the flow does not close at 100% (±5%)
    - Whether the proposal can be saved
    """
    return CalculationResponse(result=calculate_flow(data), valid=validate_proposal(data))


@router.post("/representation", response_model=PaymentShare)
def change_representation(data: RepresentationRequest) -> PaymentShare:
    """Switches a component between percentage and value, recomputing the other field."""
    return convert_representation(data.component, data.target_type, data.property_value)


@router.post("/percentage-input", response_model=ShareResponse)
def percentage_input(data: RawInputRequest) -> ShareResponse:
    """Parses a typed percentage. Partial input never fails."""
    percentage, value = set_from_percentage_input(data.raw_input, data.property_value)
    return ShareResponse(percentage=percentage, value=value)


@router.post("/value-input", response_model=ShareResponse)
def value_input(data: RawInputRequest) -> ShareResponse:
    """Parses a typed amount where the digits are cents ("12345" is 123,45)."""
    value, percentage = set_from_value_input(data.raw_input, data.property_value)
    return ShareResponse(percentage=percentage, value=value)


@router.post("/installments", response_model=InstallmentsResponse)
def installments(data: InstallmentsRequest) -> InstallmentsResponse:
    """Splits a total into installments; the last one absorbs the rounding residual."""
    amounts = divide_into_installments(data.total, data.count)
    return InstallmentsResponse(total=data.total, count=len(amounts), installments=amounts)


@router.post("", response_model=ProposalResponse, status_code=201)
def create_proposal(
    data: PaymentFlowData,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_correlation_id: str = Header(default=None)
) -> ProposalResponse:
    """
    Saves a proposal for the current broker.
    Requires a client name, a positive property value and a down payment.
    """
    correlation_id = x_correlation_id or str(uuid4())
    logger = get_logger_with_correlation(correlation_id)

    if not validate_proposal(data):
        logger.info("Proposal rejected by validation")
        raise HTTPException(
            status_code=422,
            detail="Proposta incompleta: preencha cliente, valor do imóvel e entrada"
        )

    proposal = save_proposal(db, data, current_user.id, correlation_id)
    logger.info(f"Proposal saved: id={proposal.id}")

    return ProposalResponse(
        id=proposal.id,
        client_name=proposal.client_name,
        created_at=proposal.created_at,
        updated_at=proposal.updated_at,
        calculation_data=data
    )


@router.get("/history", response_model=List[ProposalSummary])
def proposal_history(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> List[ProposalSummary]:
    """Lists the broker's saved proposals, newest first."""
    return [
        ProposalSummary(
            id=proposal.id,
            client_name=proposal.client_name,
            property_value=load_flow_data(proposal).property_value,
            created_at=proposal.created_at
        )
        for proposal in list_proposals(db, current_user.id)
    ]


@router.get("/history/{proposal_id}", response_model=ProposalResponse)
def get_saved_proposal(
    proposal_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> ProposalResponse:
    """Loads a saved proposal, upgrading it if it was saved in an older format."""
    proposal = get_proposal(db, proposal_id, current_user.id)
    if not proposal:
        raise HTTPException(status_code=404, detail="Proposal not found")

    return ProposalResponse(
        id=proposal.id,
        client_name=proposal.client_name,
        created_at=proposal.created_at,
        updated_at=proposal.updated_at,
        calculation_data=load_flow_data(proposal)
    )


@router.get("/history/{proposal_id}/txt", response_class=PlainTextResponse)
def export_saved_proposal(
    proposal_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
) -> str:
    """Plain-text version of a saved proposal, ready to share with the client."""
    proposal = get_proposal(db, proposal_id, current_user.id)
    if not proposal:
        raise HTTPException(status_code=404, detail="Proposal not found")

    return export_proposal_txt(proposal, broker_name=current_user.name)


@router.delete("/history/{proposal_id}", status_code=204)
def remove_proposal(
    proposal_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    x_correlation_id: str = Header(default=None)
) -> Response:
    correlation_id = x_correlation_id or str(uuid4())
    if not delete_proposal(db, proposal_id, current_user.id, correlation_id):
        raise HTTPException(status_code=404, detail="Proposal not found")
    return Response(status_code=204)
