"""Transaction progression from accepted offer to signed deed."""

from .models import (
    Transaction,
    TransactionStage,
    CPCVRecord,
    CPCVStatus,
    EscrituraRecord,
    EscrituraStatus,
    DocumentEntry,
    DocumentStatus,
    FinancingLedger,
    FinancingMilestone,
)
from .progression import (
    create_transaction,
    prepare_cpcv,
    sign_cpcv,
    prepare_escritura,
    complete_escritura,
    mark_fell_through,
    transaction_progress,
)
from .checklist import DOCUMENT_CATALOG, set_document_status, checklist_summary
from .financing import set_financing, set_financing_milestone

__all__ = [
    "Transaction",
    "TransactionStage",
    "CPCVRecord",
    "CPCVStatus",
    "EscrituraRecord",
    "EscrituraStatus",
    "DocumentEntry",
    "DocumentStatus",
    "FinancingLedger",
    "FinancingMilestone",
    "create_transaction",
    "prepare_cpcv",
    "sign_cpcv",
    "prepare_escritura",
    "complete_escritura",
    "mark_fell_through",
    "transaction_progress",
    "DOCUMENT_CATALOG",
    "set_document_status",
    "checklist_summary",
    "set_financing",
    "set_financing_milestone",
]
