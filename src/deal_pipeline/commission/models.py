"""Commission record attached to an accepted sale."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Dict, Any

from ..core.dates import to_iso, parse_date, parse_datetime
from .calculator import CommissionInputs, CommissionBreakdown, SplitType, compute_commission


class CommissionStatus(Enum):
    """Payment state of a commission."""
    PENDING = "pending"
    RECEIVED = "received"


@dataclass
class Commission:
    """Commission for one sale.

    Only the calculator inputs and the payment-tracking fields are stored;
    the derived values are always recomputed from the inputs.
    """

    inputs: CommissionInputs

    # Payment tracking
    status: CommissionStatus = CommissionStatus.PENDING
    amount_received: float = 0.0
    payment_date: Optional[date] = None
    payment_notes: str = ""

    notes: str = ""
    calculated_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def breakdown(self) -> CommissionBreakdown:
        return compute_commission(self.inputs)

    @property
    def sale_price(self) -> float:
        return self.inputs.sale_price

    @property
    def total_commission(self) -> float:
        return self.breakdown.total_commission

    @property
    def production_value(self) -> float:
        return self.breakdown.production_value

    @property
    def net_commission(self) -> float:
        return self.breakdown.net_commission

    @property
    def agency_share(self) -> float:
        return self.breakdown.agency_share

    @property
    def pending_amount(self) -> float:
        """Net commission still owed to the agent. Display-only."""
        return self.net_commission - (self.amount_received or 0.0)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "sale_price": self.inputs.sale_price,
            "commission_rate": self.inputs.commission_rate,
            "split_type": self.inputs.split_type.value,
            "my_split_percentage": self.inputs.my_split_percentage,
            "other_agent_percentage": self.inputs.other_agent_percentage,
            "agency_split_percentage": self.inputs.agency_split_percentage,
            "status": self.status.value,
            "amount_received": self.amount_received,
            "payment_date": to_iso(self.payment_date),
            "payment_notes": self.payment_notes,
            "notes": self.notes,
            "calculated_at": self.calculated_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        # Derived values are written for readers only; from_dict ignores them
        data.update(self.breakdown.to_dict())
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Commission":
        inputs = CommissionInputs(
            sale_price=data.get("sale_price", 0.0),
            commission_rate=data.get("commission_rate", 0.0),
            my_split_percentage=data.get("my_split_percentage", 100.0),
            agency_split_percentage=data.get("agency_split_percentage", 0.0),
            split_type=SplitType(data.get("split_type", "full")),
        )
        return cls(
            inputs=inputs,
            status=CommissionStatus(data.get("status", "pending")),
            amount_received=data.get("amount_received", 0.0) or 0.0,
            payment_date=parse_date(data.get("payment_date")),
            payment_notes=data.get("payment_notes", ""),
            notes=data.get("notes", ""),
            calculated_at=parse_datetime(data.get("calculated_at")) or datetime.now(),
            updated_at=parse_datetime(data.get("updated_at")) or datetime.now(),
        )
