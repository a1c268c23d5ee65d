"""Opportunity aggregate and the deal service."""

from .models import Opportunity, MarketingCounters, SELLER_PIPELINE_STAGES
from .service import DealService

__all__ = ["Opportunity", "MarketingCounters", "SELLER_PIPELINE_STAGES", "DealService"]
