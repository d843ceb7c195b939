"""EDI transaction record for generated and received X12 files."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional
import uuid

# Transaction types handled by the clearinghouse integration
TRANSACTION_TYPES = ("270", "271", "276", "277", "837P", "835")

STATUS_PENDING = "pending"
STATUS_PROCESSED = "processed"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"
STATUS_ERROR = "error"

TRANSACTION_STATUSES = (
    STATUS_PENDING,
    STATUS_PROCESSED,
    STATUS_ACCEPTED,
    STATUS_REJECTED,
    STATUS_ERROR,
)


def new_transaction_id() -> str:
    return f"txn_{uuid.uuid4().hex[:16]}"


@dataclass
class EDITransaction:
    """One EDI file moving through submission."""

    transaction_type: str
    control_number: str
    status: str = STATUS_PENDING
    id: str = field(default_factory=new_transaction_id)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    processed_at: Optional[str] = None
    file_size: int = 0
    record_count: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    claimmd_tracking_id: Optional[str] = None

    def __post_init__(self):
        if self.transaction_type not in TRANSACTION_TYPES:
            raise ValueError(f"Unknown transaction type: {self.transaction_type}")
        if self.status not in TRANSACTION_STATUSES:
            raise ValueError(f"Unknown transaction status: {self.status}")

    def mark(self, status: str):
        """Move the transaction to a new status and stamp processed_at."""
        if status not in TRANSACTION_STATUSES:
            raise ValueError(f"Unknown transaction status: {status}")
        self.status = status
        if status != STATUS_PENDING:
            self.processed_at = datetime.now().isoformat()

    def to_document(self) -> Dict[str, Any]:
        """Convert to a MongoDB document keyed by the transaction id."""
        document = asdict(self)
        document["_id"] = document.pop("id")
        return document

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "EDITransaction":
        data = {k: v for k, v in document.items() if k != "_id"}
        data["id"] = str(document.get("_id", data.get("id", new_transaction_id())))
        known = cls.__dataclass_fields__.keys()
        return cls(**{k: v for k, v in data.items() if k in known})
