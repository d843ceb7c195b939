"""EDI segment builder with validation and proper formatting.

This module provides safe construction of X12 segments for 837P claims,
with delimiter stripping, fixed-width ISA formatting and length checks.
"""

import logging
from typing import List, Any, Optional, Sequence

from ..utils.formatters import (
    clean_element,
    format_amount,
    format_diagnosis_code,
    format_zip,
    truncate_element,
)

logger = logging.getLogger(__name__)


class EDISegmentBuilder:
    """Builds and validates EDI segments according to X12 specifications."""

    MAX_SEGMENT_LENGTH = 999
    ISA_LENGTH = 106
    ELEMENT_SEPARATOR = "*"
    SEGMENT_TERMINATOR = "~"
    SUBELEMENT_SEPARATOR = ":"
    REPETITION_SEPARATOR = "^"

    @classmethod
    def build_isa(
        cls,
        sender_id: str,
        receiver_id: str,
        date: str,
        time: str,
        control_number: str,
        usage: str = "P",
        ack_requested: str = "0"
    ) -> str:
        """Build ISA (Interchange Control Header) segment.

        The ISA segment must be exactly 106 characters including terminator.

        Args:
            sender_id: Sender ID (15 chars, left-justified)
            receiver_id: Receiver ID (15 chars, left-justified)
            date: Date in YYMMDD format
            time: Time in HHMM format
            control_number: Interchange control number (9 digits)
            usage: Usage indicator (P=Production, T=Test)
            ack_requested: TA1 acknowledgment requested (0/1)

        Returns:
            ISA segment string
        """
        # Format fixed-width fields
        sender_padded = clean_element(sender_id)[:15].ljust(15)
        receiver_padded = clean_element(receiver_id)[:15].ljust(15)
        control_padded = str(control_number)[-9:].zfill(9)

        isa = (
            f"ISA*00*          *00*          *ZZ*{sender_padded}*ZZ*"
            f"{receiver_padded}*{date}*{time}*{cls.REPETITION_SEPARATOR}*00501*"
            f"{control_padded}*{ack_requested}*{usage}*{cls.SUBELEMENT_SEPARATOR}~"
        )

        if len(isa) != cls.ISA_LENGTH:
            logger.warning(f"ISA segment length is {len(isa)}, expected {cls.ISA_LENGTH}")

        return isa

    @classmethod
    def build_segment(cls, segment_id: str, *elements: Any) -> str:
        """Build a generic EDI segment with proper formatting.

        Trailing empty elements are dropped, as X12 requires.

        Args:
            segment_id: Segment identifier (e.g., "ST", "NM1")
            *elements: Variable number of segment elements

        Returns:
            Formatted segment string

        Raises:
            ValueError: If the segment exceeds the maximum length
        """
        str_elements = ["" if element is None else str(element) for element in elements]

        while str_elements and str_elements[-1] == "":
            str_elements.pop()

        segment = cls.ELEMENT_SEPARATOR.join([segment_id] + str_elements)
        segment += cls.SEGMENT_TERMINATOR

        if len(segment) > cls.MAX_SEGMENT_LENGTH:
            logger.error(f"Segment exceeds max length ({len(segment)} > {cls.MAX_SEGMENT_LENGTH}): {segment[:50]}...")
            raise ValueError(f"Segment too long: {len(segment)} characters")

        return segment

    @classmethod
    def build_nm1(
        cls,
        entity_code: str,
        entity_type: str,
        last_or_org_name: str,
        first_name: str = "",
        id_qualifier: str = "",
        identifier: str = ""
    ) -> str:
        """Build NM1 (Individual or Organizational Name) segment.

        Args:
            entity_code: Entity identifier (41, 40, 85, IL, PR, ...)
            entity_type: 1=Person, 2=Non-person entity
            last_or_org_name: Last name or organization name
            first_name: First name (persons only)
            id_qualifier: Identification code qualifier (XX, MI, PI, 46)
            identifier: Identification code

        Returns:
            NM1 segment string
        """
        return cls.build_segment(
            "NM1",
            entity_code,
            entity_type,
            truncate_element(clean_element(last_or_org_name), 60),
            truncate_element(clean_element(first_name), 35),
            "",  # Middle name
            "",  # Prefix
            "",  # Suffix
            id_qualifier if identifier else "",
            clean_element(identifier)
        )

    @classmethod
    def build_address(cls, street: str, city: str, state: str, zip_code: str) -> List[str]:
        """Build N3/N4 address segments.

        Returns:
            List containing N3 and N4 segments
        """
        return [
            cls.build_segment("N3", clean_element(street)),
            cls.build_segment(
                "N4",
                clean_element(city),
                clean_element(state)[:2],
                format_zip(zip_code)
            ),
        ]

    @classmethod
    def build_clm(
        cls,
        patient_control_number: str,
        amount: Any,
        place_of_service: str = "11",
        frequency_code: str = "1"
    ) -> str:
        """Build CLM (Claim Information) segment.

        Args:
            patient_control_number: Claim identifier (CLM01)
            amount: Total claim charge amount
            place_of_service: Place of service code (CLM05-1)
            frequency_code: Claim frequency type code (CLM05-3)

        Returns:
            CLM segment string
        """
        return cls.build_segment(
            "CLM",
            truncate_element(clean_element(patient_control_number), 38),
            format_amount(amount),
            "",  # Not used
            "",  # Not used
            cls.SUBELEMENT_SEPARATOR.join([clean_element(place_of_service), "B", frequency_code]),
            "Y",  # Provider signature on file
            "A",  # Assignment of benefits
            "Y",  # Benefits assignment certification
            "I"   # Release of information
        )

    @classmethod
    def build_hi(cls, diagnosis_codes: Sequence[str]) -> str:
        """Build HI (Health Care Diagnosis Code) segment.

        The first code is the principal diagnosis (ABK), the rest are
        additional diagnoses (ABF). At most 12 codes are carried.

        Args:
            diagnosis_codes: ICD-10-CM codes, with or without decimal point

        Returns:
            HI segment string
        """
        composites = []
        for index, code in enumerate(list(diagnosis_codes)[:12]):
            qualifier = "ABK" if index == 0 else "ABF"
            composites.append(f"{qualifier}{cls.SUBELEMENT_SEPARATOR}{clean_element(format_diagnosis_code(code))}")

        if len(diagnosis_codes) > 12:
            logger.warning(f"Dropping {len(diagnosis_codes) - 12} diagnosis codes beyond the 12 allowed in HI")

        return cls.build_segment("HI", *composites)

    @classmethod
    def build_sv1(
        cls,
        procedure_code: str,
        amount: Any,
        units: Any = 1,
        modifiers: Optional[Sequence[str]] = None,
        diagnosis_pointer: str = "1"
    ) -> str:
        """Build SV1 (Professional Service) segment.

        Args:
            procedure_code: CPT/HCPCS code
            amount: Line item charge amount
            units: Service unit count
            modifiers: Up to four procedure modifiers
            diagnosis_pointer: Diagnosis code pointer

        Returns:
            SV1 segment string
        """
        proc_parts = ["HC", clean_element(procedure_code)]
        proc_parts.extend(clean_element(m) for m in list(modifiers or [])[:4])

        return cls.build_segment(
            "SV1",
            cls.SUBELEMENT_SEPARATOR.join(proc_parts),
            format_amount(amount),
            "UN",
            units,
            "",  # Place of service, defaults to CLM05-1
            "",  # Not used
            diagnosis_pointer
        )

    @classmethod
    def validate_segment(cls, segment: str) -> List[str]:
        """Validate an EDI segment.

        Args:
            segment: EDI segment string

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        # Check length
        if len(segment) > cls.MAX_SEGMENT_LENGTH:
            errors.append(f"Segment exceeds max length: {len(segment)} > {cls.MAX_SEGMENT_LENGTH}")

        # Check for terminator
        if not segment.endswith(cls.SEGMENT_TERMINATOR):
            errors.append("Segment missing terminator (~)")

        # Check for segment ID
        if not segment or len(segment) < 3:
            errors.append("Segment too short or missing ID")

        return errors
