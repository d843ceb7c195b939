"""EDI 837P file generator with proper segment ordering and formatting.

This module generates complete X12 837 Professional claim interchanges
(005010X222A1) from claim records, with control numbers allocated from
the persistent counter so every interchange is uniquely numbered.
"""

import logging
from datetime import datetime
from typing import Dict, List, Any, Optional, Union

from ..config.settings import Settings
from ..models.claim import ClaimData
from .segment_builder import EDISegmentBuilder
from ..utils.formatters import format_date_yyyymmdd, format_phone
from ..utils.counter_manager import EDICounterManager

logger = logging.getLogger(__name__)

ClaimInput = Union[ClaimData, Dict[str, Any]]


class EDIGenerator:
    """Generates EDI 837 Professional claim interchanges."""

    def __init__(self, settings: Settings, counter_manager: Optional[EDICounterManager] = None):
        """Initialize EDI generator.

        Args:
            settings: Application settings
            counter_manager: Control number source (default: file counter
                under settings.output.counter_dir)
        """
        self.settings = settings
        self.edi_config = settings.edi
        self.submitter = settings.submitter
        self.billing_provider = settings.billing_provider
        self.segment_builder = EDISegmentBuilder()
        self.counter_manager = counter_manager or EDICounterManager(settings.output.counter_dir)

        # Counters for hierarchical levels and service lines
        self.hl_counter = 0
        self.st_index = 0
        self.last_control_number: Optional[str] = None

    def generate_837p(self, claim: ClaimInput) -> str:
        """Generate a complete 837P interchange for a single claim.

        Args:
            claim: ClaimData or claim dictionary

        Returns:
            Interchange string, segments terminated by '~' with no newlines
        """
        return ''.join(self.generate_segments(claim))

    def generate_segments(self, claim: ClaimInput) -> List[str]:
        """Generate the 837P segments for a single claim."""
        return self.generate_from_claims([claim])

    def generate_from_claims(self, claims: List[ClaimInput]) -> List[str]:
        """Generate one interchange containing every claim.

        Args:
            claims: List of ClaimData or claim dictionaries

        Returns:
            List of EDI segments
        """
        claim_data = [c if isinstance(c, ClaimData) else ClaimData.from_dict(c) for c in claims]
        segments = []

        # Generate timestamps
        now = datetime.now()
        isa_date = now.strftime("%y%m%d")
        isa_time = now.strftime("%H%M")
        gs_date = now.strftime("%Y%m%d")

        # Get next control numbers from counter manager
        interchange_num = self.counter_manager.get_next_interchange_number()
        group_num = self.counter_manager.get_group_number()
        trans_num = self.counter_manager.get_transaction_number()
        self.last_control_number = interchange_num

        # ISA - Interchange Control Header
        segments.append(self.segment_builder.build_isa(
            sender_id=self.edi_config.interchange_sender_id,
            receiver_id=self.edi_config.interchange_receiver_id,
            date=isa_date,
            time=isa_time,
            control_number=interchange_num,
            usage=self.edi_config.usage_indicator,
            ack_requested=self.edi_config.acknowledgment_requested
        ))

        # GS - Functional Group Header
        segments.append(self.segment_builder.build_segment(
            "GS", "HC",
            self.edi_config.functional_group_sender,
            self.edi_config.functional_group_receiver,
            gs_date,
            isa_time,
            group_num,
            "X",
            self.edi_config.implementation_version
        ))

        # ST - Transaction Set Header
        self.st_index = len(segments)
        segments.append(self.segment_builder.build_segment(
            "ST", "837",
            trans_num,
            self.edi_config.implementation_version
        ))

        # BHT - Beginning of Hierarchical Transaction
        segments.append(self.segment_builder.build_segment(
            "BHT", "0019", "00",
            interchange_num,
            gs_date,
            isa_time,
            "CH"
        ))

        # 1000A - Submitter
        segments.append(self.segment_builder.build_nm1(
            "41", "2",
            self.submitter.name,
            id_qualifier=self.submitter.id_qualifier,
            identifier=self.submitter.identifier
        ))

        segments.append(self.segment_builder.build_segment(
            "PER", "IC",
            self.submitter.contact_name,
            "TE",
            format_phone(self.submitter.contact_phone)
        ))

        # 1000B - Receiver
        segments.append(self.segment_builder.build_nm1(
            "40", "2",
            self.edi_config.receiver_name,
            id_qualifier="46",
            identifier=self.edi_config.receiver_id
        ))

        # 2000A/2000B - one billing provider level per NPI
        self.hl_counter = 0
        for provider_npi, provider_claims in self._group_claims_by_provider(claim_data).items():
            segments.extend(self._generate_billing_provider_segments(provider_npi))
            provider_hl = self.hl_counter
            for claim in provider_claims:
                segments.extend(self._generate_claim_segments(claim, provider_hl, interchange_num))

        # SE - Transaction Set Trailer
        segment_count = len(segments) - self.st_index + 1
        segments.append(self.segment_builder.build_segment(
            "SE", segment_count,
            trans_num  # Must match ST02
        ))

        # GE - Functional Group Trailer
        segments.append(self.segment_builder.build_segment(
            "GE", "1",
            group_num  # Must match GS06
        ))

        # IEA - Interchange Control Trailer
        segments.append(self.segment_builder.build_segment(
            "IEA", "1",
            interchange_num  # Must match ISA13
        ))

        logger.info(f"Generated {len(segments)} EDI segments for {len(claim_data)} claims "
                    f"(control number {interchange_num})")
        return segments

    def _group_claims_by_provider(self, claims: List[ClaimData]) -> Dict[str, List[ClaimData]]:
        """Group claims by billing provider NPI, keeping first-seen order."""
        providers: Dict[str, List[ClaimData]] = {}
        for claim in claims:
            providers.setdefault(claim.provider_npi, []).append(claim)
        return providers

    def _generate_billing_provider_segments(self, provider_npi: str) -> List[str]:
        """Generate 2000A/2010AA billing provider segments."""
        segments = []

        self.hl_counter += 1
        segments.append(self.segment_builder.build_segment(
            "HL", self.hl_counter, "", "20", "1"
        ))

        segments.append(self.segment_builder.build_segment(
            "PRV", "BI", "PXC",
            self.billing_provider.taxonomy_code
        ))

        segments.append(self.segment_builder.build_nm1(
            "85", "2",
            self.billing_provider.name,
            id_qualifier="XX",
            identifier=provider_npi
        ))

        segments.extend(self.segment_builder.build_address(
            self.billing_provider.address,
            self.billing_provider.city,
            self.billing_provider.state,
            self.billing_provider.zip_code
        ))

        segments.append(self.segment_builder.build_segment(
            "REF", "EI",
            self.billing_provider.tax_id
        ))

        return segments

    def _generate_claim_segments(self, claim: ClaimData, provider_hl: int, control_number: str) -> List[str]:
        """Generate 2000B subscriber through 2400 service line segments.

        The patient is the subscriber, so no 2000C level is emitted.

        Args:
            claim: Claim data
            provider_hl: HL01 of the parent billing provider level
            control_number: Interchange control number, used as CLM01
                when the claim has no identifier of its own

        Returns:
            List of EDI segments
        """
        segments = []

        # 2000B - Subscriber Hierarchical Level
        self.hl_counter += 1
        segments.append(self.segment_builder.build_segment(
            "HL", self.hl_counter, provider_hl, "22", "0"
        ))

        segments.append(self.segment_builder.build_segment(
            "SBR", "P",
            self.edi_config.subscriber_relationship,
            "", "", "", "", "", "",
            self.edi_config.claim_filing_indicator
        ))

        # 2010BA - Subscriber
        segments.append(self.segment_builder.build_nm1(
            "IL", "1",
            claim.last_name,
            claim.first_name,
            id_qualifier="MI",
            identifier=claim.member_id
        ))

        date_of_birth = format_date_yyyymmdd(claim.date_of_birth)
        if date_of_birth:
            segments.append(self.segment_builder.build_segment(
                "DMG", "D8",
                date_of_birth,
                claim.gender[:1].upper()
            ))

        # 2010BB - Payer
        segments.append(self.segment_builder.build_nm1(
            "PR", "2",
            self.edi_config.payer_name,
            id_qualifier="PI",
            identifier=claim.payer_id
        ))

        # 2300 - Claim Information
        segments.append(self.segment_builder.build_clm(
            patient_control_number=claim.claim_id or control_number,
            amount=claim.total_charges,
            place_of_service=claim.place_of_service or self.edi_config.default_place_of_service,
            frequency_code=self.edi_config.claim_frequency_code
        ))

        service_date = format_date_yyyymmdd(claim.service_date)
        segments.append(self.segment_builder.build_segment(
            "DTP", "431", "D8", service_date
        ))

        diagnosis_codes = claim.diagnosis_codes or [self.edi_config.default_diagnosis_code]
        segments.append(self.segment_builder.build_hi(diagnosis_codes))

        # 2310C - Service Facility
        if claim.facility_npi:
            segments.append(self.segment_builder.build_nm1(
                "77", "2",
                self.billing_provider.name,
                id_qualifier="XX",
                identifier=claim.facility_npi
            ))

        # 2400 - Service Lines
        segments.extend(self._generate_service_line_segments(claim, service_date, len(diagnosis_codes)))

        return segments

    def _generate_service_line_segments(self, claim: ClaimData, service_date: str, diagnosis_count: int) -> List[str]:
        """Generate LX/SV1/DTP*472 segments for each procedure code.

        Args:
            claim: Claim data
            service_date: Service date in CCYYMMDD format
            diagnosis_count: Number of diagnosis codes in HI

        Returns:
            List of service line segments
        """
        segments = []
        line_charges = self.allocate_line_charges(claim)
        pointer = EDISegmentBuilder.SUBELEMENT_SEPARATOR.join(
            str(i) for i in range(1, min(diagnosis_count, 4) + 1)
        )

        for index, (code, charge) in enumerate(zip(claim.procedure_codes, line_charges), start=1):
            segments.append(self.segment_builder.build_segment("LX", index))

            # Claim-level modifiers attach to the first service line
            segments.append(self.segment_builder.build_sv1(
                procedure_code=code,
                amount=charge,
                units=1,
                modifiers=claim.modifiers if index == 1 else None,
                diagnosis_pointer=pointer
            ))

            segments.append(self.segment_builder.build_segment(
                "DTP", "472", "D8", service_date
            ))

        return segments

    @staticmethod
    def allocate_line_charges(claim: ClaimData) -> List[float]:
        """Work out the charge for each service line.

        Explicit line charges are used when one is given per procedure.
        Otherwise the total is split evenly in cents and the last line
        absorbs the remainder, so the lines always sum to CLM02.

        Args:
            claim: Claim data

        Returns:
            One amount per procedure code
        """
        count = len(claim.procedure_codes)
        if count == 0:
            return []

        if len(claim.line_charges) == count:
            return list(claim.line_charges)

        total_cents = int(round(claim.total_charges * 100))
        base = total_cents // count
        cents = [base] * count
        cents[-1] += total_cents - base * count
        return [c / 100 for c in cents]

    def validate_output(self, segments: List[str]) -> List[str]:
        """Validate EDI output for compliance.

        Args:
            segments: List of EDI segments

        Returns:
            List of validation errors
        """
        errors = []

        # Check ISA segment length
        if segments and len(segments[0]) != EDISegmentBuilder.ISA_LENGTH:
            errors.append(f"ISA segment length is {len(segments[0])}, expected {EDISegmentBuilder.ISA_LENGTH}")

        # Validate each segment
        for i, segment in enumerate(segments):
            segment_errors = self.segment_builder.validate_segment(segment)
            for error in segment_errors:
                errors.append(f"Segment {i}: {error}")

        # Check for required segments
        required_segments = ["ISA", "GS", "ST", "BHT", "NM1", "CLM", "SE", "GE", "IEA"]
        segment_ids = [s.split(EDISegmentBuilder.ELEMENT_SEPARATOR, 1)[0] for s in segments]
        for req in required_segments:
            if req not in segment_ids:
                errors.append(f"Missing required segment: {req}")

        # SE01 must count ST through SE
        if "ST" in segment_ids and "SE" in segment_ids:
            st_pos = segment_ids.index("ST")
            se_pos = segment_ids.index("SE")
            declared = segments[se_pos].rstrip("~").split("*")[1]
            actual = se_pos - st_pos + 1
            if declared != str(actual):
                errors.append(f"SE segment count is {declared}, expected {actual}")

        return errors
