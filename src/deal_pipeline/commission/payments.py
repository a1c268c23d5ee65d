"""Commission payment tracking."""

import logging
from datetime import date, datetime
from typing import Optional, Iterable, Dict, Any

from ..core.errors import ValidationError
from .models import Commission, CommissionStatus

logger = logging.getLogger(__name__)


def record_commission_payment(
    commission: Commission,
    status: CommissionStatus,
    amount_received: Optional[float] = None,
    payment_date: Optional[date] = None,
    payment_notes: Optional[str] = None,
    today: Optional[date] = None,
) -> Commission:
    """Record whether, when and how much commission was received.

    Marking a commission received without an explicit amount books the full
    net commission, dated today unless a date is given. Reverting to pending
    is allowed and keeps whatever was recorded unless overridden.
    """
    if amount_received is not None and amount_received < 0:
        raise ValidationError("amount_received", "cannot be negative", amount_received)

    today = today or date.today()

    if status == CommissionStatus.RECEIVED:
        commission.amount_received = (
            commission.net_commission if amount_received is None else amount_received
        )
        commission.payment_date = payment_date or commission.payment_date or today
    else:
        if amount_received is not None:
            commission.amount_received = amount_received
        if payment_date is not None:
            commission.payment_date = payment_date

    commission.status = status
    if payment_notes is not None:
        commission.payment_notes = payment_notes
    commission.updated_at = datetime.now()

    logger.info(
        f"Commission marked {status.value}: received {commission.amount_received:.2f} "
        f"of {commission.net_commission:.2f}"
    )
    return commission


def commission_summary(commissions: Iterable[Commission], year: Optional[int] = None) -> Dict[str, Any]:
    """Expected versus received commission, optionally for one year.

    A commission belongs to the year it was calculated in.
    """
    records = [
        c for c in commissions
        if c is not None and (year is None or c.calculated_at.year == year)
    ]

    expected = sum(c.net_commission for c in records)
    received = sum(c.amount_received for c in records if c.status == CommissionStatus.RECEIVED)
    gross = sum(c.total_commission for c in records)

    by_month: Dict[str, Dict[str, float]] = {}
    for c in records:
        if c.status != CommissionStatus.RECEIVED or not c.payment_date:
            continue
        month = c.payment_date.strftime("%Y-%m")
        if month not in by_month:
            by_month[month] = {"received": 0.0, "count": 0}
        by_month[month]["received"] += c.amount_received
        by_month[month]["count"] += 1

    return {
        "year": year,
        "total_commissions": len(records),
        "received_count": len([c for c in records if c.status == CommissionStatus.RECEIVED]),
        "pending_count": len([c for c in records if c.status == CommissionStatus.PENDING]),
        "total_gross": round(gross, 2),
        "expected_net": round(expected, 2),
        "received_net": round(received, 2),
        "outstanding": round(expected - received, 2),
        "by_month": dict(sorted(by_month.items())),
    }
