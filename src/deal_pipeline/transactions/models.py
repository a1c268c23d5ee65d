"""Transaction records from accepted offer to signed deed."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any

from ..core.dates import to_iso, parse_datetime


class TransactionStage(Enum):
    """Legal pipeline stages, strictly ordered."""
    OFFER_ACCEPTED = "offer_accepted"
    CPCV_SIGNED = "cpcv_signed"
    ESCRITURA_SCHEDULED = "escritura_scheduled"
    COMPLETED = "completed"
    FELL_THROUGH = "fell_through"  # Terminal, outside the forward sequence


STAGE_ORDER = [
    TransactionStage.OFFER_ACCEPTED,
    TransactionStage.CPCV_SIGNED,
    TransactionStage.ESCRITURA_SCHEDULED,
    TransactionStage.COMPLETED,
]


class CPCVStatus(Enum):
    """Promissory contract state."""
    PENDING = "pending"
    PREPARED = "prepared"
    SIGNED = "signed"


class EscrituraStatus(Enum):
    """Deed state."""
    PENDING = "pending"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class DocumentStatus(Enum):
    """Checklist entry state. Any transition is allowed."""
    PENDING = "pending"
    RECEIVED = "received"
    VERIFIED = "verified"


class FinancingMilestone(Enum):
    """Banking milestones, independent of each other."""
    BANK_APPROVAL = "bank_approval"
    EVALUATION_SCHEDULED = "evaluation_scheduled"
    EVALUATION_COMPLETED = "evaluation_completed"
    FINAL_APPROVAL = "final_approval"


@dataclass(frozen=True)
class AcceptedOfferSnapshot:
    """The accepted offer as it was at acceptance."""
    offer_id: str
    amount: float
    accepted_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "offer_id": self.offer_id,
            "amount": self.amount,
            "accepted_at": self.accepted_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AcceptedOfferSnapshot":
        return cls(
            offer_id=data["offer_id"],
            amount=data["amount"],
            accepted_at=parse_datetime(data.get("accepted_at")) or datetime.now(),
        )


@dataclass
class DocumentEntry:
    """One document the deal needs."""
    type: str
    label: str
    required: bool = True
    status: DocumentStatus = DocumentStatus.PENDING
    uploaded_at: Optional[datetime] = None
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "label": self.label,
            "required": self.required,
            "status": self.status.value,
            "uploaded_at": to_iso(self.uploaded_at),
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentEntry":
        return cls(
            type=data["type"],
            label=data.get("label", data["type"]),
            required=data.get("required", True),
            status=DocumentStatus(data.get("status", "pending")),
            uploaded_at=parse_datetime(data.get("uploaded_at")),
            notes=data.get("notes", ""),
        )


@dataclass
class MilestoneState:
    completed: bool = False
    date: Optional[datetime] = None


@dataclass
class FinancingLedger:
    """Mortgage milestones for a financed sale."""
    bank_name: str = ""
    approval_amount: float = 0.0
    milestones: Dict[FinancingMilestone, MilestoneState] = field(
        default_factory=lambda: {m: MilestoneState() for m in FinancingMilestone}
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bank_name": self.bank_name,
            "approval_amount": self.approval_amount,
            "milestones": {
                m.value: {"completed": s.completed, "date": to_iso(s.date)}
                for m, s in self.milestones.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FinancingLedger":
        stored = data.get("milestones", {})
        milestones = {}
        for m in FinancingMilestone:
            entry = stored.get(m.value, {})
            milestones[m] = MilestoneState(
                completed=entry.get("completed", False),
                date=parse_datetime(entry.get("date")),
            )
        return cls(
            bank_name=data.get("bank_name", ""),
            approval_amount=data.get("approval_amount", 0.0) or 0.0,
            milestones=milestones,
        )


@dataclass
class CPCVRecord:
    """Promissory purchase-and-sale contract."""
    status: CPCVStatus = CPCVStatus.PENDING
    scheduled_date: Optional[datetime] = None
    signal_amount: float = 0.0
    location: str = ""
    notes: str = ""
    signed_date: Optional[datetime] = None
    # Checklist as it stood when the contract was signed
    documents_snapshot: List[DocumentEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "scheduled_date": to_iso(self.scheduled_date),
            "signal_amount": self.signal_amount,
            "location": self.location,
            "notes": self.notes,
            "signed_date": to_iso(self.signed_date),
            "documents_snapshot": [d.to_dict() for d in self.documents_snapshot],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CPCVRecord":
        return cls(
            status=CPCVStatus(data.get("status", "pending")),
            scheduled_date=parse_datetime(data.get("scheduled_date")),
            signal_amount=data.get("signal_amount", 0.0) or 0.0,
            location=data.get("location", ""),
            notes=data.get("notes", ""),
            signed_date=parse_datetime(data.get("signed_date")),
            documents_snapshot=[DocumentEntry.from_dict(d) for d in data.get("documents_snapshot", [])],
        )


@dataclass
class EscrituraRecord:
    """Notarized deed."""
    status: EscrituraStatus = EscrituraStatus.PENDING
    scheduled_date: Optional[datetime] = None
    notary_name: str = ""
    notary_location: str = ""
    final_amount: float = 0.0
    registration_number: str = ""
    notes: str = ""
    completed_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "scheduled_date": to_iso(self.scheduled_date),
            "notary_name": self.notary_name,
            "notary_location": self.notary_location,
            "final_amount": self.final_amount,
            "registration_number": self.registration_number,
            "notes": self.notes,
            "completed_date": to_iso(self.completed_date),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EscrituraRecord":
        return cls(
            status=EscrituraStatus(data.get("status", "pending")),
            scheduled_date=parse_datetime(data.get("scheduled_date")),
            notary_name=data.get("notary_name", ""),
            notary_location=data.get("notary_location", ""),
            final_amount=data.get("final_amount", 0.0) or 0.0,
            registration_number=data.get("registration_number", ""),
            notes=data.get("notes", ""),
            completed_date=parse_datetime(data.get("completed_date")),
        )


@dataclass
class Transaction:
    """Legal fulfillment of exactly one accepted offer."""

    accepted_offer: AcceptedOfferSnapshot
    stage: TransactionStage = TransactionStage.OFFER_ACCEPTED

    cpcv: CPCVRecord = field(default_factory=CPCVRecord)
    escritura: EscrituraRecord = field(default_factory=EscrituraRecord)
    financing: Optional[FinancingLedger] = None
    documents: List[DocumentEntry] = field(default_factory=list)

    fell_through_reason: Optional[str] = None
    fell_through_at: Optional[datetime] = None

    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def has_financing(self) -> bool:
        return self.financing is not None

    @property
    def is_closed(self) -> bool:
        return self.stage in (TransactionStage.COMPLETED, TransactionStage.FELL_THROUGH)

    def document(self, doc_type: str) -> Optional[DocumentEntry]:
        for entry in self.documents:
            if entry.type == doc_type:
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "accepted_offer": self.accepted_offer.to_dict(),
            "cpcv": self.cpcv.to_dict(),
            "escritura": self.escritura.to_dict(),
            "financing": self.financing.to_dict() if self.financing else None,
            "documents": [d.to_dict() for d in self.documents],
            "fell_through_reason": self.fell_through_reason,
            "fell_through_at": to_iso(self.fell_through_at),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        financing = data.get("financing")
        return cls(
            accepted_offer=AcceptedOfferSnapshot.from_dict(data["accepted_offer"]),
            stage=TransactionStage(data.get("stage", "offer_accepted")),
            cpcv=CPCVRecord.from_dict(data.get("cpcv", {})),
            escritura=EscrituraRecord.from_dict(data.get("escritura", {})),
            financing=FinancingLedger.from_dict(financing) if financing else None,
            documents=[DocumentEntry.from_dict(d) for d in data.get("documents", [])],
            fell_through_reason=data.get("fell_through_reason"),
            fell_through_at=parse_datetime(data.get("fell_through_at")),
            created_at=parse_datetime(data.get("created_at")) or datetime.now(),
            updated_at=parse_datetime(data.get("updated_at")) or datetime.now(),
        )
