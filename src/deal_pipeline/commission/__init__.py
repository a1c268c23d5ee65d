"""Commission calculation and payment tracking."""

from .calculator import (
    SplitType,
    CommissionInputs,
    CommissionBreakdown,
    compute_commission,
    validate_commission_inputs,
    build_commission_inputs,
)
from .models import Commission, CommissionStatus
from .payments import record_commission_payment, commission_summary

__all__ = [
    "SplitType",
    "CommissionInputs",
    "CommissionBreakdown",
    "compute_commission",
    "validate_commission_inputs",
    "build_commission_inputs",
    "Commission",
    "CommissionStatus",
    "record_commission_payment",
    "commission_summary",
]
