"""X12 835 remittance advice (ERA) parsing for payment posting.

The parser reads the payment header (BPR/TRN), the payer and payee (N1),
and each claim payment (CLP) with its service lines (SVC) and adjustments
(CAS). Segments it does not post from are skipped.
"""

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .segment_builder import EDISegmentBuilder
from .validator import EDIValidationResult, split_segments

logger = logging.getLogger(__name__)

# CAS carries up to six reason/amount/quantity trios after the group code
MAX_ADJUSTMENT_TRIOS = 6


@dataclass
class Adjustment:
    group_code: str
    reason_code: str
    amount: float
    quantity: float = 0.0


@dataclass
class ServiceLinePayment:
    procedure_code: str
    modifiers: List[str] = field(default_factory=list)
    charge_amount: float = 0.0
    paid_amount: float = 0.0
    units: float = 1.0
    adjustments: List[Adjustment] = field(default_factory=list)


@dataclass
class ClaimPayment:
    """One CLP loop: the payer's decision on a submitted claim."""
    claim_id: str
    status_code: str = ""
    charge_amount: float = 0.0
    paid_amount: float = 0.0
    patient_responsibility: float = 0.0
    filing_indicator: str = ""
    payer_claim_number: str = ""
    service_lines: List[ServiceLinePayment] = field(default_factory=list)
    adjustments: List[Adjustment] = field(default_factory=list)

    @property
    def total_adjustments(self) -> float:
        amounts = [a.amount for a in self.adjustments]
        for line in self.service_lines:
            amounts.extend(a.amount for a in line.adjustments)
        return round(sum(amounts), 2)


@dataclass
class ERAPayment:
    """A parsed 835 interchange."""
    control_number: str = ""
    payment_amount: float = 0.0
    credit_debit_flag: str = ""
    payment_method: str = ""
    payment_date: str = ""
    trace_number: str = ""
    payer_name: str = ""
    payer_id: str = ""
    payee_name: str = ""
    payee_npi: str = ""
    claims: List[ClaimPayment] = field(default_factory=list)

    @property
    def total_paid(self) -> float:
        return round(sum(c.paid_amount for c in self.claims), 2)

    def find_claim(self, claim_id: str) -> Optional[ClaimPayment]:
        for claim in self.claims:
            if claim.claim_id == claim_id:
                return claim
        return None


def _element(elements: List[str], position: int) -> str:
    return elements[position].strip() if position < len(elements) else ""


def _amount(value: str) -> float:
    if not value:
        return 0.0
    try:
        amount = float(value)
    except ValueError:
        logger.warning(f"Invalid amount in remittance: {value}")
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def parse_adjustments(elements: List[str]) -> List[Adjustment]:
    """Expand a CAS segment into one Adjustment per reason code."""
    group_code = _element(elements, 1)
    adjustments = []

    for trio in range(MAX_ADJUSTMENT_TRIOS):
        reason_pos = 2 + trio * 3
        reason_code = _element(elements, reason_pos)
        if not reason_code:
            break
        adjustments.append(Adjustment(
            group_code=group_code,
            reason_code=reason_code,
            amount=_amount(_element(elements, reason_pos + 1)),
            quantity=_amount(_element(elements, reason_pos + 2)),
        ))

    return adjustments


def _parse_service_line(elements: List[str]) -> ServiceLinePayment:
    # SVC01 is a composite: qualifier, procedure code, then modifiers
    composite = _element(elements, 1).split(EDISegmentBuilder.SUBELEMENT_SEPARATOR)
    units = _element(elements, 5)
    return ServiceLinePayment(
        procedure_code=composite[1] if len(composite) > 1 else composite[0],
        modifiers=[m for m in composite[2:] if m],
        charge_amount=_amount(_element(elements, 2)),
        paid_amount=_amount(_element(elements, 3)),
        units=_amount(units) if units else 1.0,
    )


def parse_835(content: str) -> ERAPayment:
    """Parse 835 remittance content.

    Args:
        content: Raw X12 835 content, with or without line breaks between segments

    Returns:
        ERAPayment holding every claim payment found
    """
    era = ERAPayment()
    claim: Optional[ClaimPayment] = None
    service_line: Optional[ServiceLinePayment] = None

    for elements in split_segments(content):
        segment_id = elements[0]

        if segment_id == "ISA":
            era.control_number = _element(elements, 13)
        elif segment_id == "BPR":
            era.payment_amount = _amount(_element(elements, 2))
            era.credit_debit_flag = _element(elements, 3)
            era.payment_method = _element(elements, 4)
            era.payment_date = _element(elements, 16)
        elif segment_id == "TRN":
            era.trace_number = _element(elements, 2)
        elif segment_id == "N1":
            entity = _element(elements, 1)
            if entity == "PR":
                era.payer_name = _element(elements, 2)
                era.payer_id = _element(elements, 4)
            elif entity == "PE":
                era.payee_name = _element(elements, 2)
                era.payee_npi = _element(elements, 4)
        elif segment_id == "CLP":
            claim = ClaimPayment(
                claim_id=_element(elements, 1),
                status_code=_element(elements, 2),
                charge_amount=_amount(_element(elements, 3)),
                paid_amount=_amount(_element(elements, 4)),
                patient_responsibility=_amount(_element(elements, 5)),
                filing_indicator=_element(elements, 6),
                payer_claim_number=_element(elements, 7),
            )
            service_line = None
            era.claims.append(claim)
        elif segment_id == "SVC" and claim is not None:
            service_line = _parse_service_line(elements)
            claim.service_lines.append(service_line)
        elif segment_id == "CAS" and claim is not None:
            target = service_line if service_line is not None else claim
            target.adjustments.extend(parse_adjustments(elements))
        elif segment_id == "SE":
            claim = None
            service_line = None

    logger.info(f"Parsed 835 {era.control_number or '(no ISA)'}: "
                f"{len(era.claims)} claim payments, ${era.payment_amount:,.2f}")
    return era


def parse_835_file(file_path: str) -> ERAPayment:
    """Read and parse an 835 file."""
    content = Path(file_path).read_text(encoding="utf-8", errors="replace")
    return parse_835(content)


def validate_era(era: ERAPayment) -> EDIValidationResult:
    """Check a parsed remittance before posting it."""
    errors = []
    warnings = []

    if not era.control_number:
        errors.append("Missing ERA header information")
    if not era.payer_name:
        errors.append("Missing payer information")

    if not era.claims:
        errors.append("No payment records found in ERA file")

    for index, claim in enumerate(era.claims, start=1):
        if not claim.claim_id:
            errors.append(f"Payment {index}: Missing claim number")
        if claim.paid_amount < 0 and claim.status_code != "22":
            errors.append(f"Payment {index}: Invalid payment amount")
        if claim.charge_amount and claim.paid_amount > claim.charge_amount:
            warnings.append(f"Payment {index}: Payment exceeds total charges")

    # BPR02 equals the claim payments when no provider level adjustments apply
    if era.claims and round(era.payment_amount - era.total_paid, 2) != 0:
        warnings.append(
            f"Payment amount {era.payment_amount:.2f} does not match "
            f"claim payments {era.total_paid:.2f}"
        )

    return EDIValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
