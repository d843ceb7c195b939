"""Pre-submission claim scrubber.

Runs field, coding and date checks over a claim before it is turned into
an 837P, collecting errors (claim would be rejected) and warnings (claim
is at risk of denial or delay) with a 0-100 readiness score.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Union

from ..config.settings import ValidationConfig
from ..models.claim import ClaimData
from ..utils.formatters import parse_date
from . import code_sets

logger = logging.getLogger(__name__)

ERROR_PENALTY = 20
WARNING_PENALTY = 5

REQUIRED_FIELDS = [
    ("patient_name", "Patient name is required"),
    ("member_id", "Member ID is required"),
    ("payer_id", "Payer ID is required"),
    ("service_date", "Service date is required"),
    ("provider_npi", "Provider NPI is required"),
]


@dataclass
class ValidationIssue:
    """A single scrubber finding."""
    code: str
    field: str
    message: str
    severity: str = "error"


@dataclass
class ClaimValidationResult:
    """Scrubber result for one claim."""
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def score(self) -> int:
        penalty = ERROR_PENALTY * len(self.errors) + WARNING_PENALTY * len(self.warnings)
        return max(0, 100 - penalty)

    @property
    def status(self) -> str:
        if self.errors:
            return "invalid"
        if self.warnings:
            return "warning"
        return "valid"


class ClaimValidator:
    """Scrubs claims ahead of 837P generation."""

    def __init__(self, config: Optional[ValidationConfig] = None):
        self.config = config or ValidationConfig()

    def validate(self, claim: Union[ClaimData, Dict[str, Any]], today: Optional[date] = None) -> ClaimValidationResult:
        """Run every scrubber check over a claim.

        Args:
            claim: ClaimData or claim dictionary
            today: Reference date for date checks (default: today)

        Returns:
            ClaimValidationResult
        """
        if not isinstance(claim, ClaimData):
            claim = ClaimData.from_dict(claim)
        today = today or date.today()
        result = ClaimValidationResult()

        self._check_required_fields(claim, result)
        self._check_provider(claim, result)
        self._check_procedures(claim, result)
        self._check_diagnoses(claim, result)
        self._check_charges(claim, result)
        self._check_service_date(claim, result, today)
        self._check_place_of_service(claim, result)

        logger.info(f"Claim {claim.claim_id or claim.patient_id or '<unidentified>'} scrubbed: "
                    f"status={result.status}, score={result.score}")
        return result

    def _check_required_fields(self, claim: ClaimData, result: ClaimValidationResult):
        for index, (attr, message) in enumerate(REQUIRED_FIELDS, start=1):
            if not str(getattr(claim, attr) or "").strip():
                result.errors.append(ValidationIssue(f"REQ_{index:03d}", attr, message))

    def _check_provider(self, claim: ClaimData, result: ClaimValidationResult):
        if claim.provider_npi and not code_sets.is_valid_npi(claim.provider_npi):
            result.errors.append(ValidationIssue(
                "NPI_001", "provider_npi",
                f"Provider NPI {claim.provider_npi} must be 10 digits and pass checksum validation"
            ))
        if claim.facility_npi and not code_sets.is_valid_npi(claim.facility_npi):
            result.errors.append(ValidationIssue(
                "NPI_002", "facility_npi",
                f"Facility NPI {claim.facility_npi} must be 10 digits and pass checksum validation"
            ))

    def _check_procedures(self, claim: ClaimData, result: ClaimValidationResult):
        if not claim.procedure_codes:
            result.errors.append(ValidationIssue("COD_000", "procedure_codes", "At least one procedure code is required"))

        for index, code in enumerate(claim.procedure_codes):
            if not code_sets.is_valid_procedure_code(code):
                result.errors.append(ValidationIssue(
                    "COD_001", f"procedure_codes[{index}]",
                    f"Invalid CPT/HCPCS code format: {code}"
                ))

        for index, modifier in enumerate(claim.modifiers):
            if not code_sets.is_valid_modifier(modifier):
                result.warnings.append(ValidationIssue(
                    "COD_002", f"modifiers[{index}]",
                    f"Modifier format may be incorrect: {modifier}", "warning"
                ))

        if len(claim.procedure_codes) > self.config.max_procedure_lines:
            result.warnings.append(ValidationIssue(
                "OPT_001", "procedure_codes",
                "Consider splitting claim into multiple submissions", "warning"
            ))

    def _check_diagnoses(self, claim: ClaimData, result: ClaimValidationResult):
        if not claim.diagnosis_codes:
            result.errors.append(ValidationIssue("COD_004", "diagnosis_codes", "At least one diagnosis code is required"))

        for index, code in enumerate(claim.diagnosis_codes):
            if not code_sets.is_valid_icd10(code):
                result.errors.append(ValidationIssue(
                    "COD_003", f"diagnosis_codes[{index}]",
                    f"Invalid ICD-10 code format: {code}"
                ))

    def _check_charges(self, claim: ClaimData, result: ClaimValidationResult):
        if not claim.total_charges > 0:
            result.errors.append(ValidationIssue("BIL_003", "total_charges", "Total charges must be greater than zero"))

    def _check_service_date(self, claim: ClaimData, result: ClaimValidationResult, today: date):
        if not claim.service_date:
            return  # reported by the required field check

        service_date = parse_date(claim.service_date)
        if service_date is None:
            result.errors.append(ValidationIssue(
                "DTE_001", "service_date", f"Service date is not a valid date: {claim.service_date}"
            ))
            return

        if service_date > today:
            result.errors.append(ValidationIssue("DTE_002", "service_date", "Service date cannot be in the future"))
        elif (today - service_date).days > self.config.timely_filing_days:
            result.warnings.append(ValidationIssue(
                "DTE_003", "service_date",
                f"Service date is more than {self.config.timely_filing_days} days old - "
                f"claim may exceed the timely filing limit", "warning"
            ))

    def _check_place_of_service(self, claim: ClaimData, result: ClaimValidationResult):
        pos = claim.place_of_service.strip().upper()
        if not pos:
            return
        if not code_sets.is_valid_place_of_service(pos):
            result.errors.append(ValidationIssue(
                "BIL_001", "place_of_service", f"Invalid place of service code: {pos}"
            ))
        elif pos not in self.config.common_places_of_service:
            result.warnings.append(ValidationIssue(
                "BIL_002", "place_of_service", f"Unusual place of service code: {pos}", "warning"
            ))
