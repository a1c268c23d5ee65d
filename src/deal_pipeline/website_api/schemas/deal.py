"""Pydantic models for deal pipeline requests and responses."""

from datetime import date, datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from ...commission.calculator import SplitType
from ...commission.models import CommissionStatus
from ...offers.models import FinancingStatus, BuyerQuality
from ...transactions.models import DocumentStatus


class CreateOpportunityRequest(BaseModel):
    property_address: str
    asking_price: float
    seller_ref: str = ""
    opportunity_id: Optional[str] = None
    stage: str = "lead"


class StageRequest(BaseModel):
    stage: str


class ViewingRequest(BaseModel):
    viewing_date: Optional[datetime] = None
    visitor: str = ""
    completed: bool = False
    notes: str = ""


class DaysOnMarketRequest(BaseModel):
    today: Optional[date] = None


class SubmitOfferRequest(BaseModel):
    buyer_name: str
    amount: float
    down_payment: float = 0.0
    financing_status: FinancingStatus = FinancingStatus.PENDING
    conditions: List[str] = Field(default_factory=list)
    buyer_quality: BuyerQuality = BuyerQuality.MEDIUM
    valid_until: Optional[date] = None
    notes: str = ""
    offer_id: Optional[str] = None


class AcceptOfferRequest(BaseModel):
    commission_rate: Optional[float] = None
    split_type: Optional[SplitType] = None
    my_split_percentage: Optional[float] = None
    agency_split_percentage: Optional[float] = None


class RejectOfferRequest(BaseModel):
    reason: str


class CounterOfferRequest(BaseModel):
    counter_amount: float
    counter_conditions: List[str] = Field(default_factory=list)
    counter_notes: str = ""


class ExpireOffersRequest(BaseModel):
    today: Optional[date] = None


class CPCVRequest(BaseModel):
    scheduled_date: Optional[datetime] = None
    signal_amount: Optional[float] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class EscrituraRequest(BaseModel):
    scheduled_date: Optional[datetime] = None
    notary_name: Optional[str] = None
    notary_location: Optional[str] = None
    final_amount: Optional[float] = None
    registration_number: Optional[str] = None
    notes: Optional[str] = None


class FellThroughRequest(BaseModel):
    reason: str


class DocumentStatusRequest(BaseModel):
    status: DocumentStatus
    notes: Optional[str] = None


class FinancingRequest(BaseModel):
    enabled: bool
    bank_name: Optional[str] = None
    approval_amount: Optional[float] = None


class MilestoneRequest(BaseModel):
    completed: bool = True


class CommissionRequest(BaseModel):
    sale_price: Optional[float] = None
    commission_rate: Optional[float] = None
    split_type: Optional[SplitType] = None
    my_split_percentage: Optional[float] = None
    agency_split_percentage: Optional[float] = None
    notes: Optional[str] = None


class CommissionPaymentRequest(BaseModel):
    status: CommissionStatus = CommissionStatus.RECEIVED
    amount_received: Optional[float] = None
    payment_date: Optional[date] = None
    payment_notes: Optional[str] = None


class OpportunityResponse(BaseModel):
    success: bool = True
    opportunity: Dict[str, Any]


class OpportunityListResponse(BaseModel):
    success: bool = True
    count: int
    opportunities: List[Dict[str, Any]]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    detail: str
    fields: Optional[List[Dict[str, Any]]] = None
    retryable: Optional[bool] = None
