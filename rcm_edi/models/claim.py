"""Claim model used as input to 837P generation and claim scrubbing.

Claim records arrive from MongoDB, JSON exports of the RCM dashboard
(camelCase keys) or CSV files (snake_case headers). ClaimData normalizes
all of them without enforcing any field constraints.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional
import logging
import math

logger = logging.getLogger(__name__)

# snake_case attribute -> accepted source keys, in lookup order
_FIELD_ALIASES = {
    "patient_id": ["patient_id", "patientId"],
    "patient_name": ["patient_name", "patientName"],
    "member_id": ["member_id", "memberId", "subscriber_id"],
    "payer_id": ["payer_id", "payerId"],
    "service_date": ["service_date", "serviceDate", "date_of_service"],
    "total_charges": ["total_charges", "totalCharges", "total_amount"],
    "procedure_codes": ["procedure_codes", "procedureCodes"],
    "diagnosis_codes": ["diagnosis_codes", "diagnosisCodes"],
    "provider_npi": ["provider_npi", "providerNPI", "providerNpi", "npi_number"],
    "facility_npi": ["facility_npi", "facilityNPI", "facilityNpi"],
    "place_of_service": ["place_of_service", "placeOfService"],
    "modifiers": ["modifiers"],
    "claim_id": ["claim_id", "claimId", "claim_number"],
    "date_of_birth": ["date_of_birth", "dateOfBirth", "dob"],
    "gender": ["gender", "sex"],
    "line_charges": ["line_charges", "lineCharges"],
}


def _split_codes(value: Any) -> List[str]:
    """Normalize a code list given as a list or a delimited string."""
    if not value:
        return []
    if isinstance(value, str):
        parts = value.replace(';', ',').replace('|', ',').split(',')
        return [p.strip() for p in parts if p.strip()]
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def _to_float(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid charge amount: {value}")
        return 0.0
    if not math.isfinite(amount):
        logger.warning(f"Invalid charge amount: {value}")
        return 0.0
    return amount


@dataclass
class ClaimData:
    """A professional claim as submitted to the clearinghouse."""

    patient_id: str = ""
    patient_name: str = ""
    member_id: str = ""
    payer_id: str = ""
    service_date: str = ""
    total_charges: float = 0.0
    procedure_codes: List[str] = field(default_factory=list)
    diagnosis_codes: List[str] = field(default_factory=list)
    provider_npi: str = ""
    facility_npi: Optional[str] = None
    place_of_service: str = "11"
    modifiers: List[str] = field(default_factory=list)
    claim_id: str = ""
    date_of_birth: str = ""
    gender: str = ""
    line_charges: List[float] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimData":
        """Create ClaimData from a camelCase or snake_case dictionary.

        Args:
            data: Claim record (MongoDB document, JSON object or CSV row)

        Returns:
            ClaimData instance; missing fields take their defaults
        """
        values = {}
        for attr, keys in _FIELD_ALIASES.items():
            for key in keys:
                if key in data and data[key] not in (None, ""):
                    values[attr] = data[key]
                    break

        claim = cls(
            patient_id=str(values.get("patient_id", "")),
            patient_name=str(values.get("patient_name", "")),
            member_id=str(values.get("member_id", "")),
            payer_id=str(values.get("payer_id", "")),
            service_date=str(values.get("service_date", "")),
            total_charges=_to_float(values.get("total_charges")),
            procedure_codes=_split_codes(values.get("procedure_codes")),
            diagnosis_codes=_split_codes(values.get("diagnosis_codes")),
            provider_npi=str(values.get("provider_npi", "")),
            facility_npi=str(values["facility_npi"]) if "facility_npi" in values else None,
            place_of_service=str(values.get("place_of_service", "11")),
            modifiers=_split_codes(values.get("modifiers")),
            claim_id=str(values.get("claim_id", "")),
            date_of_birth=str(values.get("date_of_birth", "")),
            gender=str(values.get("gender", "")),
            line_charges=[_to_float(v) for v in _split_codes(values.get("line_charges"))],
        )
        return claim

    @property
    def first_name(self) -> str:
        parts = self.patient_name.split()
        return parts[0] if parts else ""

    @property
    def last_name(self) -> str:
        parts = self.patient_name.split()
        return parts[1] if len(parts) > 1 else ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert claim to a snake_case dictionary."""
        return asdict(self)
