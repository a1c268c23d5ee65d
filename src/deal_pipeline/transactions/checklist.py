"""Per-transaction document checklist."""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from ..core.errors import ValidationError
from .models import Transaction, DocumentEntry, DocumentStatus

logger = logging.getLogger(__name__)


# Seeded into every new transaction, in this order
DOCUMENT_CATALOG = [
    {"type": "buyer_id", "label": "Buyer ID", "required": True},
    {"type": "nif", "label": "Tax number (NIF)", "required": True},
    {"type": "proof_of_funds", "label": "Proof of funds", "required": True},
    {"type": "financing_approval", "label": "Financing approval", "required": False},
]


def seed_checklist() -> List[DocumentEntry]:
    """Fresh checklist with every catalog document pending."""
    return [
        DocumentEntry(type=doc["type"], label=doc["label"], required=doc["required"])
        for doc in DOCUMENT_CATALOG
    ]


def set_document_status(
    transaction: Transaction,
    doc_type: str,
    status: DocumentStatus,
    notes: Optional[str] = None,
) -> DocumentEntry:
    """Set one entry's status.

    Moving to received or verified stamps ``uploaded_at`` the first time;
    moving back to pending clears it, so a received→pending round trip
    restores the entry to its original state.
    """
    entry = transaction.document(doc_type)
    if entry is None:
        known = ", ".join(d.type for d in transaction.documents)
        raise ValidationError("doc_type", f"unknown document type (expected one of: {known})", doc_type)

    if status == DocumentStatus.PENDING:
        entry.uploaded_at = None
    elif entry.uploaded_at is None:
        entry.uploaded_at = datetime.now()

    old_status = entry.status
    entry.status = status
    if notes is not None:
        entry.notes = notes
    transaction.updated_at = datetime.now()

    logger.info(f"Document {doc_type}: {old_status.value} -> {status.value}")
    return entry


def missing_required_documents(transaction: Transaction) -> List[DocumentEntry]:
    """Required entries not yet received or verified."""
    return [d for d in transaction.documents if d.required and d.status == DocumentStatus.PENDING]


def checklist_summary(transaction: Transaction) -> Dict[str, Any]:
    """Checklist with completion status."""
    docs = transaction.documents
    verified = len([d for d in docs if d.status == DocumentStatus.VERIFIED])
    received = len([d for d in docs if d.status == DocumentStatus.RECEIVED])
    pending = len([d for d in docs if d.status == DocumentStatus.PENDING])

    return {
        "total": len(docs),
        "total_required": len([d for d in docs if d.required]),
        "verified": verified,
        "received": received,
        "pending": pending,
        "progress_percent": round(verified / len(docs) * 100) if docs else 0,
        "missing_required": [d.type for d in missing_required_documents(transaction)],
        "checklist": [d.to_dict() for d in docs],
    }
