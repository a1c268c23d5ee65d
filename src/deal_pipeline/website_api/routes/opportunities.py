"""Opportunity, offer, transaction and commission routes.

Every write returns the updated opportunity. Pipeline errors are turned
into JSON error bodies by the handlers registered in ``main``.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends

from ...opportunities.models import Opportunity
from ...opportunities.service import DealService
from ...offers.negotiation import rank_offers
from ...transactions.models import FinancingMilestone
from ..dependencies import get_service
from ..schemas.deal import (
    CreateOpportunityRequest,
    StageRequest,
    ViewingRequest,
    DaysOnMarketRequest,
    SubmitOfferRequest,
    AcceptOfferRequest,
    RejectOfferRequest,
    CounterOfferRequest,
    ExpireOffersRequest,
    CPCVRequest,
    EscrituraRequest,
    FellThroughRequest,
    DocumentStatusRequest,
    FinancingRequest,
    MilestoneRequest,
    CommissionRequest,
    CommissionPaymentRequest,
    OpportunityResponse,
    OpportunityListResponse,
    ErrorResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/consultants/{consultant_id}/clients/{client_id}/opportunities", tags=["opportunities"])
summary_router = APIRouter(prefix="/v1/commissions", tags=["commissions"])

ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


def _respond(opportunity: Opportunity) -> OpportunityResponse:
    return OpportunityResponse(opportunity=opportunity.to_dict())


# === OPPORTUNITIES ===

@router.get("", response_model=OpportunityListResponse)
def list_opportunities(
    consultant_id: str,
    client_id: str,
    stage: Optional[str] = None,
    service: DealService = Depends(get_service),
):
    opportunities = service.list_opportunities(consultant_id, client_id, stage=stage)
    return OpportunityListResponse(
        count=len(opportunities),
        opportunities=[o.to_dict() for o in opportunities],
    )


@router.post("", response_model=OpportunityResponse, status_code=201, responses=ERROR_RESPONSES)
def create_opportunity(
    consultant_id: str,
    client_id: str,
    body: CreateOpportunityRequest,
    service: DealService = Depends(get_service),
):
    return _respond(service.create_opportunity(
        consultant_id, client_id, body.property_address, body.asking_price,
        seller_ref=body.seller_ref, opportunity_id=body.opportunity_id, stage=body.stage,
    ))


@router.get("/{opportunity_id}", responses=ERROR_RESPONSES)
def get_opportunity(
    consultant_id: str,
    client_id: str,
    opportunity_id: str,
    service: DealService = Depends(get_service),
):
    """Opportunity with derived progress, checklist and commission figures."""
    return {"success": True, **service.deal_summary(consultant_id, client_id, opportunity_id)}


@router.patch("/{opportunity_id}/stage", response_model=OpportunityResponse, responses=ERROR_RESPONSES)
def set_stage(consultant_id: str, client_id: str, opportunity_id: str, body: StageRequest,
              service: DealService = Depends(get_service)):
    return _respond(service.set_stage(consultant_id, client_id, opportunity_id, body.stage))


@router.post("/{opportunity_id}/viewings", response_model=OpportunityResponse, responses=ERROR_RESPONSES)
def record_viewing(consultant_id: str, client_id: str, opportunity_id: str, body: ViewingRequest,
                   service: DealService = Depends(get_service)):
    return _respond(service.record_viewing(
        consultant_id, client_id, opportunity_id,
        viewing_date=body.viewing_date, visitor=body.visitor, completed=body.completed, notes=body.notes,
    ))


@router.post("/{opportunity_id}/days-on-market", response_model=OpportunityResponse, responses=ERROR_RESPONSES)
def refresh_days_on_market(consultant_id: str, client_id: str, opportunity_id: str, body: DaysOnMarketRequest,
                           service: DealService = Depends(get_service)):
    return _respond(service.refresh_days_on_market(consultant_id, client_id, opportunity_id, today=body.today))


# === OFFERS ===

@router.post("/{opportunity_id}/offers", response_model=OpportunityResponse, status_code=201,
             responses=ERROR_RESPONSES)
def submit_offer(consultant_id: str, client_id: str, opportunity_id: str, body: SubmitOfferRequest,
                 service: DealService = Depends(get_service)):
    return _respond(service.submit_offer(
        consultant_id, client_id, opportunity_id, body.buyer_name, body.amount,
        down_payment=body.down_payment,
        financing_status=body.financing_status,
        conditions=body.conditions,
        buyer_quality=body.buyer_quality,
        valid_until=body.valid_until,
        notes=body.notes,
        offer_id=body.offer_id,
    ))


@router.get("/{opportunity_id}/offers/ranking", responses=ERROR_RESPONSES)
def offer_ranking(consultant_id: str, client_id: str, opportunity_id: str,
                  service: DealService = Depends(get_service)):
    """Advisory comparison of the live offers."""
    opportunity = service.get_opportunity(consultant_id, client_id, opportunity_id)
    return {"success": True, "ranking": rank_offers(opportunity.offers)}


@router.post("/{opportunity_id}/offers/expire", response_model=OpportunityResponse, responses=ERROR_RESPONSES)
def expire_offers(consultant_id: str, client_id: str, opportunity_id: str, body: ExpireOffersRequest,
                  service: DealService = Depends(get_service)):
    return _respond(service.expire_offers(consultant_id, client_id, opportunity_id, today=body.today))


@router.post("/{opportunity_id}/offers/{offer_id}/accept", response_model=OpportunityResponse,
             responses=ERROR_RESPONSES)
def accept_offer(consultant_id: str, client_id: str, opportunity_id: str, offer_id: str,
                 body: AcceptOfferRequest, service: DealService = Depends(get_service)):
    return _respond(service.accept_offer(
        consultant_id, client_id, opportunity_id, offer_id,
        commission_rate=body.commission_rate,
        split_type=body.split_type,
        my_split_percentage=body.my_split_percentage,
        agency_split_percentage=body.agency_split_percentage,
    ))


@router.post("/{opportunity_id}/offers/{offer_id}/reject", response_model=OpportunityResponse,
             responses=ERROR_RESPONSES)
def reject_offer(consultant_id: str, client_id: str, opportunity_id: str, offer_id: str,
                 body: RejectOfferRequest, service: DealService = Depends(get_service)):
    return _respond(service.reject_offer(consultant_id, client_id, opportunity_id, offer_id, body.reason))


@router.post("/{opportunity_id}/offers/{offer_id}/counter", response_model=OpportunityResponse,
             responses=ERROR_RESPONSES)
def counter_offer(consultant_id: str, client_id: str, opportunity_id: str, offer_id: str,
                  body: CounterOfferRequest, service: DealService = Depends(get_service)):
    return _respond(service.counter_offer(
        consultant_id, client_id, opportunity_id, offer_id,
        body.counter_amount, body.counter_conditions, body.counter_notes,
    ))


# === TRANSACTION ===

@router.post("/{opportunity_id}/cpcv/prepare", response_model=OpportunityResponse, responses=ERROR_RESPONSES)
def prepare_cpcv(consultant_id: str, client_id: str, opportunity_id: str, body: CPCVRequest,
                 service: DealService = Depends(get_service)):
    return _respond(service.prepare_cpcv(
        consultant_id, client_id, opportunity_id,
        body.scheduled_date, body.signal_amount, body.location, body.notes,
    ))


@router.post("/{opportunity_id}/cpcv/sign", response_model=OpportunityResponse, responses=ERROR_RESPONSES)
def sign_cpcv(consultant_id: str, client_id: str, opportunity_id: str, body: CPCVRequest,
              service: DealService = Depends(get_service)):
    return _respond(service.sign_cpcv(
        consultant_id, client_id, opportunity_id,
        body.scheduled_date, body.signal_amount, body.location, body.notes,
    ))


@router.post("/{opportunity_id}/escritura/prepare", response_model=OpportunityResponse, responses=ERROR_RESPONSES)
def prepare_escritura(consultant_id: str, client_id: str, opportunity_id: str, body: EscrituraRequest,
                      service: DealService = Depends(get_service)):
    return _respond(service.prepare_escritura(
        consultant_id, client_id, opportunity_id,
        body.scheduled_date, body.notary_name, body.notary_location,
        body.final_amount, body.registration_number, body.notes,
    ))


@router.post("/{opportunity_id}/escritura/complete", response_model=OpportunityResponse,
             responses=ERROR_RESPONSES)
def complete_escritura(consultant_id: str, client_id: str, opportunity_id: str, body: EscrituraRequest,
                       service: DealService = Depends(get_service)):
    return _respond(service.complete_escritura(
        consultant_id, client_id, opportunity_id,
        body.scheduled_date, body.notary_name, body.notary_location,
        body.final_amount, body.registration_number, body.notes,
    ))


@router.post("/{opportunity_id}/fell-through", response_model=OpportunityResponse, responses=ERROR_RESPONSES)
def mark_fell_through(consultant_id: str, client_id: str, opportunity_id: str, body: FellThroughRequest,
                      service: DealService = Depends(get_service)):
    return _respond(service.mark_fell_through(consultant_id, client_id, opportunity_id, body.reason))


@router.put("/{opportunity_id}/documents/{doc_type}", response_model=OpportunityResponse,
            responses=ERROR_RESPONSES)
def set_document_status(consultant_id: str, client_id: str, opportunity_id: str, doc_type: str,
                        body: DocumentStatusRequest, service: DealService = Depends(get_service)):
    return _respond(service.toggle_document_status(
        consultant_id, client_id, opportunity_id, doc_type, body.status, body.notes,
    ))


@router.put("/{opportunity_id}/financing", response_model=OpportunityResponse, responses=ERROR_RESPONSES)
def set_financing(consultant_id: str, client_id: str, opportunity_id: str, body: FinancingRequest,
                  service: DealService = Depends(get_service)):
    return _respond(service.set_financing(
        consultant_id, client_id, opportunity_id, body.enabled, body.bank_name, body.approval_amount,
    ))


@router.put("/{opportunity_id}/financing/milestones/{milestone}", response_model=OpportunityResponse,
            responses=ERROR_RESPONSES)
def set_financing_milestone(consultant_id: str, client_id: str, opportunity_id: str,
                            milestone: FinancingMilestone, body: MilestoneRequest,
                            service: DealService = Depends(get_service)):
    return _respond(service.set_financing_milestone(
        consultant_id, client_id, opportunity_id, milestone, body.completed,
    ))


# === COMMISSION ===

@router.post("/{opportunity_id}/commission", response_model=OpportunityResponse, responses=ERROR_RESPONSES)
def compute_commission(consultant_id: str, client_id: str, opportunity_id: str, body: CommissionRequest,
                       service: DealService = Depends(get_service)):
    return _respond(service.compute_commission(
        consultant_id, client_id, opportunity_id,
        sale_price=body.sale_price,
        commission_rate=body.commission_rate,
        split_type=body.split_type,
        my_split_percentage=body.my_split_percentage,
        agency_split_percentage=body.agency_split_percentage,
        notes=body.notes,
    ))


@router.post("/{opportunity_id}/commission/payment", response_model=OpportunityResponse,
             responses=ERROR_RESPONSES)
def record_commission_payment(consultant_id: str, client_id: str, opportunity_id: str,
                              body: CommissionPaymentRequest, service: DealService = Depends(get_service)):
    return _respond(service.record_commission_payment(
        consultant_id, client_id, opportunity_id, body.status,
        amount_received=body.amount_received,
        payment_date=body.payment_date,
        payment_notes=body.payment_notes,
    ))


@summary_router.get("/summary")
def commission_summary(consultant_id: Optional[str] = None, year: Optional[int] = None,
                       service: DealService = Depends(get_service)):
    """Expected versus received commission."""
    return {"success": True, **service.commission_summary(consultant_id, year)}
