"""Commission calculation for an agreed sale.

The agent's commission is a split of a split:

    total_commission = sale_price * commission_rate / 100
    production_value = total_commission * my_split_percentage / 100
    net_commission   = production_value * agency_split_percentage / 100
    agency_share     = production_value - net_commission

``my_split_percentage`` is the agent's share when the sale is shared with a
co-operating agent; ``agency_split_percentage`` is the share of production
the brokerage lets the agent keep.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..core.config import DealConfig
from ..core.errors import ValidationError

logger = logging.getLogger(__name__)


class SplitType(Enum):
    """Whether the sale commission is shared with another agent."""
    FULL = "full"    # Agent keeps 100% of the sale commission
    SPLIT = "split"  # Shared with a co-operating agent


@dataclass
class CommissionInputs:
    """Inputs to the calculator; all percentages are 0-100."""

    sale_price: float
    commission_rate: float
    my_split_percentage: float = 100.0
    agency_split_percentage: float = 55.0
    split_type: SplitType = SplitType.FULL

    @property
    def other_agent_percentage(self) -> float:
        return 100.0 - self.my_split_percentage


@dataclass(frozen=True)
class CommissionBreakdown:
    """Derived commission values. Never edited by hand."""

    total_commission: float
    production_value: float
    net_commission: float
    agency_share: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "total_commission": self.total_commission,
            "production_value": self.production_value,
            "net_commission": self.net_commission,
            "agency_share": self.agency_share,
        }


def validate_commission_inputs(inputs: CommissionInputs) -> List[ValidationError]:
    """Return every problem with the inputs; empty when they are usable."""
    errors = []

    if inputs.sale_price is None or inputs.sale_price <= 0:
        errors.append(ValidationError("sale_price", "must be greater than zero", inputs.sale_price))

    if inputs.commission_rate is None or not 0 <= inputs.commission_rate <= 100:
        errors.append(ValidationError("commission_rate", "must be between 0 and 100", inputs.commission_rate))

    for name in ("my_split_percentage", "agency_split_percentage"):
        value = getattr(inputs, name)
        if value is None or not 0 <= value <= 100:
            errors.append(ValidationError(name, "must be between 0 and 100", value))

    if inputs.split_type == SplitType.FULL and inputs.my_split_percentage != 100:
        errors.append(ValidationError(
            "my_split_percentage", "must be 100 when the commission is not shared",
            inputs.my_split_percentage,
        ))

    return errors


def compute_commission(inputs: CommissionInputs, strict: bool = False) -> CommissionBreakdown:
    """Compute the four derived commission values.

    With ``strict`` the inputs are validated first and a ValidationError is
    raised for bad input; otherwise the caller is expected to have checked
    ``validate_commission_inputs`` and decided whether to warn or block.
    """
    if strict:
        errors = validate_commission_inputs(inputs)
        if errors:
            raise ValidationError.from_errors(errors)

    sale_price = inputs.sale_price or 0.0
    total_commission = sale_price * (inputs.commission_rate or 0.0) / 100
    production_value = total_commission * (inputs.my_split_percentage or 0.0) / 100
    net_commission = production_value * (inputs.agency_split_percentage or 0.0) / 100
    agency_share = production_value - net_commission

    return CommissionBreakdown(
        total_commission=total_commission,
        production_value=production_value,
        net_commission=net_commission,
        agency_share=agency_share,
    )


def build_commission_inputs(
    sale_price: float,
    commission_rate: Optional[float] = None,
    split_type: Optional[SplitType] = None,
    my_split_percentage: Optional[float] = None,
    agency_split_percentage: Optional[float] = None,
    config: Optional[DealConfig] = None,
) -> CommissionInputs:
    """Fill omitted inputs from the agent's defaults.

    A full commission always keeps 100%; a shared one starts at the
    configured shared split (50/50 unless changed).
    """
    config = config or DealConfig()
    split_type = split_type or SplitType.FULL

    if split_type == SplitType.FULL:
        my_split = 100.0 if my_split_percentage is None else my_split_percentage
    else:
        my_split = config.shared_split_percentage if my_split_percentage is None else my_split_percentage

    return CommissionInputs(
        sale_price=sale_price,
        commission_rate=config.commission_rate if commission_rate is None else commission_rate,
        my_split_percentage=my_split,
        agency_split_percentage=(
            config.agency_split_percentage if agency_split_percentage is None else agency_split_percentage
        ),
        split_type=split_type,
    )
