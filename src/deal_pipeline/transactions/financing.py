"""Mortgage milestone ledger for financed sales."""

import logging
from datetime import datetime
from typing import Optional, Dict, Any

from ..core.errors import ValidationError, InvariantViolation
from .models import Transaction, FinancingLedger, FinancingMilestone, MilestoneState

logger = logging.getLogger(__name__)


def _require_open(transaction: Transaction, action: str):
    if transaction.is_closed:
        raise InvariantViolation(
            f"Cannot {action}: transaction is {transaction.stage.value}",
            current_state=transaction.stage.value,
            action=action,
        )


def set_financing(
    transaction: Transaction,
    enabled: bool,
    bank_name: Optional[str] = None,
    approval_amount: Optional[float] = None,
) -> Optional[FinancingLedger]:
    """Turn financing tracking on or off.

    Turning it on creates the ledger (or updates the bank details of an
    existing one). Turning it off discards the ledger and its milestones.
    """
    _require_open(transaction, "change financing")

    if approval_amount is not None and approval_amount < 0:
        raise ValidationError("approval_amount", "cannot be negative", approval_amount)

    if not enabled:
        if transaction.financing is not None:
            logger.info("Financing tracking disabled, milestone ledger discarded")
        transaction.financing = None
        transaction.updated_at = datetime.now()
        return None

    ledger = transaction.financing or FinancingLedger()
    if bank_name is not None:
        ledger.bank_name = bank_name.strip()
    if approval_amount is not None:
        ledger.approval_amount = approval_amount
    transaction.financing = ledger
    transaction.updated_at = datetime.now()
    return ledger


def set_financing_milestone(
    transaction: Transaction,
    milestone: FinancingMilestone,
    completed: bool = True,
) -> MilestoneState:
    """Mark one milestone done (dated now) or not done (date cleared)."""
    _require_open(transaction, "update financing milestone")
    if transaction.financing is None:
        raise InvariantViolation(
            "Financing is not enabled for this transaction",
            current_state="no_financing",
            action="update financing milestone",
        )

    state = MilestoneState(completed=completed, date=datetime.now() if completed else None)
    transaction.financing.milestones[milestone] = state
    transaction.updated_at = datetime.now()

    logger.info(f"Financing milestone {milestone.value} -> {'done' if completed else 'open'}")
    return state


def financing_progress(ledger: Optional[FinancingLedger]) -> Dict[str, Any]:
    if ledger is None:
        return {"enabled": False, "completed": 0, "total": 0}
    done = len([s for s in ledger.milestones.values() if s.completed])
    return {
        "enabled": True,
        "bank_name": ledger.bank_name,
        "approval_amount": ledger.approval_amount,
        "completed": done,
        "total": len(ledger.milestones),
    }
