"""Transaction progression: CPCV, then Escritura, then done.

Each of the two legal steps has a prepare action, which may be repeated to
edit the details, and a one-way commit action (sign the CPCV, complete the
Escritura) that freezes a timestamp and advances the stage. Stages only ever
move forward; a deal that collapses is closed with ``mark_fell_through``.
"""

import copy
import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING

from ..core.errors import ValidationError, InvariantViolation
from .checklist import seed_checklist, missing_required_documents
from .models import (
    Transaction,
    TransactionStage,
    STAGE_ORDER,
    AcceptedOfferSnapshot,
    CPCVRecord,
    CPCVStatus,
    EscrituraRecord,
    EscrituraStatus,
)

if TYPE_CHECKING:
    from ..offers.models import Offer

logger = logging.getLogger(__name__)

DEFAULT_SIGNAL_PERCENTAGE = 10.0


def create_transaction(
    offer: "Offer",
    accepted_at: Optional[datetime] = None,
    amount: Optional[float] = None,
) -> Transaction:
    """Seed the transaction for a just-accepted offer.

    ``amount`` is the agreed price; it defaults to the offer's effective amount.
    """
    accepted_at = accepted_at or datetime.now()
    amount = offer.effective_amount if amount is None else amount
    txn = Transaction(
        accepted_offer=AcceptedOfferSnapshot(
            offer_id=offer.id,
            amount=amount,
            accepted_at=accepted_at,
        ),
        escritura=EscrituraRecord(final_amount=amount),
        documents=seed_checklist(),
        created_at=accepted_at,
        updated_at=accepted_at,
    )
    logger.info(f"Created transaction for offer {offer.id} at {txn.accepted_offer.amount:.2f}")
    return txn


def _advance(transaction: Transaction, target: TransactionStage):
    """Move the stage forward to ``target``; never backwards."""
    current = STAGE_ORDER.index(transaction.stage)
    wanted = STAGE_ORDER.index(target)
    if wanted < current:
        raise InvariantViolation(
            f"Stage cannot go back from {transaction.stage.value} to {target.value}",
            current_state=transaction.stage.value,
        )
    if wanted > current + 1:
        raise InvariantViolation(
            f"Stage cannot skip from {transaction.stage.value} to {target.value}",
            current_state=transaction.stage.value,
        )
    if wanted != current:
        logger.info(f"Transaction stage {transaction.stage.value} -> {target.value}")
    transaction.stage = target


def _require_not_fell_through(transaction: Transaction, action: str):
    if transaction.stage == TransactionStage.FELL_THROUGH:
        raise InvariantViolation(
            f"Cannot {action}: the deal fell through",
            current_state=transaction.stage.value,
            action=action,
        )


# === CPCV ===

def _merge_cpcv(
    transaction: Transaction,
    scheduled_date: Optional[datetime],
    signal_amount: Optional[float],
    location: Optional[str],
    notes: Optional[str],
    signal_percentage: float,
) -> CPCVRecord:
    current = transaction.cpcv
    if signal_amount is None:
        signal_amount = current.signal_amount or round(
            transaction.accepted_offer.amount * signal_percentage / 100
        )
    return replace(
        current,
        scheduled_date=scheduled_date if scheduled_date is not None else current.scheduled_date,
        signal_amount=signal_amount,
        location=location.strip() if location is not None else current.location,
        notes=notes if notes is not None else current.notes,
    )


def _validate_cpcv(record: CPCVRecord) -> List[ValidationError]:
    errors = []
    if not record.scheduled_date:
        errors.append(ValidationError("scheduled_date", "CPCV date is required"))
    if not record.signal_amount or record.signal_amount <= 0:
        errors.append(ValidationError("signal_amount", "signal must be greater than zero", record.signal_amount))
    if not record.location:
        errors.append(ValidationError("location", "CPCV location is required"))
    return errors


def _require_cpcv_editable(transaction: Transaction, action: str):
    _require_not_fell_through(transaction, action)
    if transaction.cpcv.status == CPCVStatus.SIGNED:
        raise InvariantViolation(
            "CPCV is already signed and can no longer be edited",
            current_state=transaction.cpcv.status.value,
            action=action,
        )


def prepare_cpcv(
    transaction: Transaction,
    scheduled_date: Optional[datetime] = None,
    signal_amount: Optional[float] = None,
    location: Optional[str] = None,
    notes: Optional[str] = None,
    signal_percentage: float = DEFAULT_SIGNAL_PERCENTAGE,
) -> CPCVRecord:
    """Write the CPCV details. Repeatable; does not advance the stage.

    Omitted fields keep their current value. The signal defaults to
    ``signal_percentage`` of the accepted amount.
    """
    _require_cpcv_editable(transaction, "prepare CPCV")

    record = _merge_cpcv(transaction, scheduled_date, signal_amount, location, notes, signal_percentage)
    errors = _validate_cpcv(record)
    if errors:
        raise ValidationError.from_errors(errors)

    record.status = CPCVStatus.PREPARED
    transaction.cpcv = record
    transaction.updated_at = datetime.now()
    logger.info(f"CPCV prepared for {record.scheduled_date.isoformat()} at {record.location}")
    return record


def sign_cpcv(
    transaction: Transaction,
    scheduled_date: Optional[datetime] = None,
    signal_amount: Optional[float] = None,
    location: Optional[str] = None,
    notes: Optional[str] = None,
    signed_at: Optional[datetime] = None,
    signal_percentage: float = DEFAULT_SIGNAL_PERCENTAGE,
) -> CPCVRecord:
    """Mark the CPCV signed and advance to ``cpcv_signed``. One way."""
    _require_cpcv_editable(transaction, "sign CPCV")

    record = _merge_cpcv(transaction, scheduled_date, signal_amount, location, notes, signal_percentage)
    errors = _validate_cpcv(record)
    if errors:
        raise ValidationError.from_errors(errors)

    missing = missing_required_documents(transaction)
    if missing:
        logger.warning(
            f"Signing CPCV with required documents outstanding: {', '.join(d.type for d in missing)}"
        )

    record.status = CPCVStatus.SIGNED
    record.signed_date = signed_at or datetime.now()
    record.documents_snapshot = copy.deepcopy(transaction.documents)
    transaction.cpcv = record
    _advance(transaction, TransactionStage.CPCV_SIGNED)
    transaction.updated_at = datetime.now()
    return record


# === ESCRITURA ===

def _merge_escritura(
    transaction: Transaction,
    scheduled_date: Optional[datetime],
    notary_name: Optional[str],
    notary_location: Optional[str],
    final_amount: Optional[float],
    registration_number: Optional[str],
    notes: Optional[str],
) -> EscrituraRecord:
    current = transaction.escritura
    return replace(
        current,
        scheduled_date=scheduled_date if scheduled_date is not None else current.scheduled_date,
        notary_name=notary_name.strip() if notary_name is not None else current.notary_name,
        notary_location=notary_location.strip() if notary_location is not None else current.notary_location,
        final_amount=final_amount if final_amount is not None else current.final_amount,
        registration_number=(
            registration_number.strip() if registration_number is not None else current.registration_number
        ),
        notes=notes if notes is not None else current.notes,
    )


def _validate_escritura(record: EscrituraRecord, completing: bool) -> List[ValidationError]:
    errors = []
    if not record.scheduled_date:
        errors.append(ValidationError("scheduled_date", "Escritura date is required"))
    if not record.notary_name:
        errors.append(ValidationError("notary_name", "notary name is required"))
    if not record.notary_location:
        errors.append(ValidationError("notary_location", "Escritura location is required"))
    if record.final_amount is not None and record.final_amount < 0:
        errors.append(ValidationError("final_amount", "cannot be negative", record.final_amount))
    if completing and not record.registration_number:
        errors.append(ValidationError("registration_number", "registration number is required to complete"))
    return errors


def _require_escritura_reachable(transaction: Transaction, action: str):
    _require_not_fell_through(transaction, action)
    if transaction.cpcv.status != CPCVStatus.SIGNED:
        raise InvariantViolation(
            f"Cannot {action}: CPCV has not been signed",
            current_state=transaction.stage.value,
            action=action,
        )
    if transaction.escritura.status == EscrituraStatus.COMPLETED:
        raise InvariantViolation(
            "Escritura is already completed",
            current_state=transaction.stage.value,
            action=action,
        )


def prepare_escritura(
    transaction: Transaction,
    scheduled_date: Optional[datetime] = None,
    notary_name: Optional[str] = None,
    notary_location: Optional[str] = None,
    final_amount: Optional[float] = None,
    registration_number: Optional[str] = None,
    notes: Optional[str] = None,
) -> EscrituraRecord:
    """Schedule (or reschedule) the Escritura.

    The first successful call moves the stage to ``escritura_scheduled``;
    later calls only edit the details.
    """
    _require_escritura_reachable(transaction, "prepare Escritura")

    record = _merge_escritura(
        transaction, scheduled_date, notary_name, notary_location,
        final_amount, registration_number, notes,
    )
    errors = _validate_escritura(record, completing=False)
    if errors:
        raise ValidationError.from_errors(errors)

    record.status = EscrituraStatus.SCHEDULED
    transaction.escritura = record
    _advance(transaction, TransactionStage.ESCRITURA_SCHEDULED)
    transaction.updated_at = datetime.now()
    logger.info(f"Escritura scheduled for {record.scheduled_date.isoformat()} with {record.notary_name}")
    return record


def complete_escritura(
    transaction: Transaction,
    scheduled_date: Optional[datetime] = None,
    notary_name: Optional[str] = None,
    notary_location: Optional[str] = None,
    final_amount: Optional[float] = None,
    registration_number: Optional[str] = None,
    notes: Optional[str] = None,
    completed_at: Optional[datetime] = None,
) -> EscrituraRecord:
    """Record the deed as signed and close the transaction. One way."""
    _require_escritura_reachable(transaction, "complete Escritura")
    if transaction.escritura.status != EscrituraStatus.SCHEDULED:
        raise InvariantViolation(
            "Cannot complete Escritura: it has not been scheduled",
            current_state=transaction.stage.value,
            action="complete Escritura",
        )

    record = _merge_escritura(
        transaction, scheduled_date, notary_name, notary_location,
        final_amount, registration_number, notes,
    )
    errors = _validate_escritura(record, completing=True)
    if errors:
        raise ValidationError.from_errors(errors)

    record.status = EscrituraStatus.COMPLETED
    record.completed_date = completed_at or datetime.now()
    transaction.escritura = record
    _advance(transaction, TransactionStage.COMPLETED)
    transaction.updated_at = datetime.now()
    return record


# === FALL THROUGH ===

def mark_fell_through(transaction: Transaction, reason: str) -> Transaction:
    """Close a deal that collapsed before the deed was signed."""
    if not reason or not reason.strip():
        raise ValidationError("reason", "a reason is required when a deal falls through")
    if transaction.is_closed:
        raise InvariantViolation(
            f"Transaction is already {transaction.stage.value}",
            current_state=transaction.stage.value,
            action="mark fell through",
        )

    logger.info(f"Transaction fell through at {transaction.stage.value}: {reason.strip()}")
    transaction.stage = TransactionStage.FELL_THROUGH
    transaction.fell_through_reason = reason.strip()
    transaction.fell_through_at = datetime.now()
    transaction.updated_at = transaction.fell_through_at
    return transaction


def transaction_progress(transaction: Transaction) -> int:
    """Percent of the four stages reached; 0 once the deal fell through."""
    if transaction.stage == TransactionStage.FELL_THROUGH:
        return 0
    index = STAGE_ORDER.index(transaction.stage)
    return round((index + 1) / len(STAGE_ORDER) * 100)
