"""Buyer offers and their negotiation."""

from .models import Offer, OfferStatus, FinancingStatus, BuyerQuality, OFFER_CONDITIONS
from .negotiation import (
    submit_offer,
    accept_offer,
    reject_offer,
    counter_offer,
    expire_offers,
    rank_offers,
)

__all__ = [
    "Offer",
    "OfferStatus",
    "FinancingStatus",
    "BuyerQuality",
    "OFFER_CONDITIONS",
    "submit_offer",
    "accept_offer",
    "reject_offer",
    "counter_offer",
    "expire_offers",
    "rank_offers",
]
