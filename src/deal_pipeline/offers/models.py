"""Buyer offers against a listing."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, List, Dict, Any

from ..core.dates import to_iso, parse_date, parse_datetime


class OfferStatus(Enum):
    """Negotiation state of an offer."""
    PENDING = "pending"
    ACCEPTED = "accepted"      # Terminal
    REJECTED = "rejected"      # Terminal
    COUNTERED = "countered"    # Seller answered with a counter amount
    EXPIRED = "expired"        # Terminal, valid_until passed without an answer


class FinancingStatus(Enum):
    """How the buyer pays."""
    CASH = "cash"
    PRE_APPROVED = "pre_approved"
    PENDING = "pending"


class BuyerQuality(Enum):
    """Agent's assessment of the buyer."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


OFFER_CONDITIONS = {
    "financing_needed": "Financing needed",
    "inspection_contingency": "Subject to inspection",
    "sale_contingency": "Subject to buyer's own sale",
    "appraisal_contingency": "Subject to appraisal",
}

TERMINAL_STATUSES = {OfferStatus.ACCEPTED, OfferStatus.REJECTED, OfferStatus.EXPIRED}


@dataclass
class Offer:
    """One buyer proposal.

    A negotiation thread is collapsed onto this record: each counter
    overwrites ``counter_amount`` and ``counter_conditions``. An offer
    accepted after a counter keeps the counter as the agreed price.
    """

    id: str
    buyer_name: str
    amount: float

    down_payment: float = 0.0
    financing_status: FinancingStatus = FinancingStatus.PENDING
    conditions: List[str] = field(default_factory=list)
    buyer_quality: BuyerQuality = BuyerQuality.MEDIUM
    valid_until: Optional[date] = None
    notes: str = ""

    # Negotiation state
    status: OfferStatus = OfferStatus.PENDING
    counter_amount: Optional[float] = None       # Set while COUNTERED, kept on ACCEPTED
    counter_conditions: List[str] = field(default_factory=list)
    counter_notes: str = ""
    reject_reason: Optional[str] = None           # Set iff status == REJECTED

    received_at: datetime = field(default_factory=datetime.now)
    responded_at: Optional[datetime] = None

    @property
    def effective_amount(self) -> float:
        """Amount currently on the table, or agreed: the counter if there is one."""
        if self.status in (OfferStatus.COUNTERED, OfferStatus.ACCEPTED) and self.counter_amount:
            return self.counter_amount
        return self.amount

    @property
    def is_open(self) -> bool:
        return self.status in (OfferStatus.PENDING, OfferStatus.COUNTERED)

    def is_past_validity(self, today: date) -> bool:
        return self.valid_until is not None and self.valid_until < today

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "buyer_name": self.buyer_name,
            "amount": self.amount,
            "down_payment": self.down_payment,
            "financing_status": self.financing_status.value,
            "conditions": sorted(self.conditions),
            "buyer_quality": self.buyer_quality.value,
            "valid_until": to_iso(self.valid_until),
            "notes": self.notes,
            "status": self.status.value,
            "counter_amount": self.counter_amount,
            "counter_conditions": sorted(self.counter_conditions),
            "counter_notes": self.counter_notes,
            "reject_reason": self.reject_reason,
            "received_at": self.received_at.isoformat(),
            "responded_at": to_iso(self.responded_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Offer":
        return cls(
            id=data["id"],
            buyer_name=data.get("buyer_name", ""),
            amount=data.get("amount", 0.0),
            down_payment=data.get("down_payment", 0.0) or 0.0,
            financing_status=FinancingStatus(data.get("financing_status", "pending")),
            conditions=list(data.get("conditions", [])),
            buyer_quality=BuyerQuality(data.get("buyer_quality", "medium")),
            valid_until=parse_date(data.get("valid_until")),
            notes=data.get("notes", ""),
            status=OfferStatus(data.get("status", "pending")),
            counter_amount=data.get("counter_amount"),
            counter_conditions=list(data.get("counter_conditions", [])),
            counter_notes=data.get("counter_notes", ""),
            reject_reason=data.get("reject_reason"),
            received_at=parse_datetime(data.get("received_at")) or datetime.now(),
            responded_at=parse_datetime(data.get("responded_at")),
        )
