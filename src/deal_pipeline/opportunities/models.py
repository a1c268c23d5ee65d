"""Seller-side opportunity: one listing and everything negotiated on it."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any

from ..core.dates import to_iso, parse_datetime
from ..offers.models import Offer
from ..transactions.models import Transaction
from ..commission.models import Commission


# Informational label for where the listing sits in the seller funnel
SELLER_PIPELINE_STAGES = [
    "lead",
    "avaliacao",
    "angariacao",
    "em_marketing",
    "proposta_recebida",
    "em_negociacao",
    "proposta_aceite",
    "cpcv",
    "escritura",
    "concluido",
    "perdido",
]


@dataclass
class MarketingCounters:
    """Listing activity counters."""
    viewings_scheduled: int = 0
    viewings_completed: int = 0
    inquiries: int = 0
    offers_received: int = 0
    days_on_market: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "viewings_scheduled": self.viewings_scheduled,
            "viewings_completed": self.viewings_completed,
            "inquiries": self.inquiries,
            "offers_received": self.offers_received,
            "days_on_market": self.days_on_market,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MarketingCounters":
        data = data or {}
        return cls(
            viewings_scheduled=data.get("viewings_scheduled", 0),
            viewings_completed=data.get("viewings_completed", 0),
            inquiries=data.get("inquiries", 0),
            offers_received=data.get("offers_received", 0),
            days_on_market=data.get("days_on_market", 0),
        )


@dataclass
class Opportunity:
    """A listing under a consultant's client, with its offers and sale."""

    id: str
    consultant_id: str
    client_id: str

    seller_ref: str = ""
    property_address: str = ""
    asking_price: float = 0.0
    stage: str = "lead"

    offers: List[Offer] = field(default_factory=list)
    accepted_offer_id: Optional[str] = None
    transaction: Optional[Transaction] = None
    commission: Optional[Commission] = None

    marketing: MarketingCounters = field(default_factory=MarketingCounters)
    viewings: List[Dict[str, Any]] = field(default_factory=list)
    listed_at: Optional[datetime] = None

    version: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def accepted_offer(self) -> Optional[Offer]:
        """The accepted offer, resolved from ``offers``."""
        if self.accepted_offer_id is None:
            return None
        return self.offer(self.accepted_offer_id)

    def offer(self, offer_id: str) -> Optional[Offer]:
        for offer in self.offers:
            if offer.id == offer_id:
                return offer
        return None

    @property
    def open_offers(self) -> List[Offer]:
        return [o for o in self.offers if o.is_open]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "consultant_id": self.consultant_id,
            "client_id": self.client_id,
            "seller_ref": self.seller_ref,
            "property_address": self.property_address,
            "asking_price": self.asking_price,
            "stage": self.stage,
            "offers": [o.to_dict() for o in self.offers],
            "accepted_offer_id": self.accepted_offer_id,
            "transaction": self.transaction.to_dict() if self.transaction else None,
            "commission": self.commission.to_dict() if self.commission else None,
            "marketing": self.marketing.to_dict(),
            "viewings": list(self.viewings),
            "listed_at": to_iso(self.listed_at),
            "version": self.version,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Opportunity":
        txn_data = data.get("transaction")
        commission_data = data.get("commission")
        return cls(
            id=data["id"],
            consultant_id=data["consultant_id"],
            client_id=data["client_id"],
            seller_ref=data.get("seller_ref", ""),
            property_address=data.get("property_address", ""),
            asking_price=data.get("asking_price", 0.0),
            stage=data.get("stage", "lead"),
            offers=[Offer.from_dict(o) for o in data.get("offers", [])],
            accepted_offer_id=data.get("accepted_offer_id"),
            transaction=Transaction.from_dict(txn_data) if txn_data else None,
            commission=Commission.from_dict(commission_data) if commission_data else None,
            marketing=MarketingCounters.from_dict(data.get("marketing")),
            viewings=list(data.get("viewings", [])),
            listed_at=parse_datetime(data.get("listed_at")),
            version=data.get("version", 0),
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
            updated_at=parse_datetime(data.get("updated_at")) or datetime.now(),
        )
