"""Pre-submission validation for X12 EDI content.

Validation is advisory: required segment markers are checked by presence,
and envelope consistency problems are reported as warnings. Nothing here
raises on string input or attempts to correct the content.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .segment_builder import EDISegmentBuilder

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 1_000_000
UNKNOWN_CONTROL_NUMBER = "UNKNOWN"

# Marker -> error reported when it is absent
REQUIRED_MARKERS = [
    ("ISA*", "Missing ISA header segment"),
    ("GS*", "Missing GS header segment"),
    ("ST*837*", "Missing ST header for 837 transaction"),
    ("SE*", "Missing SE trailer segment"),
    ("IEA*", "Missing IEA trailer segment"),
    ("NM1*85*", "Missing billing provider information (NM1*85)"),
    ("CLM*", "Missing claim information (CLM)"),
]

DIAGNOSIS_MARKERS = ("HI*ABK", "HI*BK")

# ISA01-ISA08, ISA09 date (YYMMDD or CCYYMMDD), ISA10 time (HHMM or HHMMSS),
# ISA11, ISA12, then the ISA13 digits
_ISA_CONTROL_PATTERN = re.compile(
    r"ISA\*(?:[^*]*\*){8}(?:\d{8}|\d{6})\*(?:\d{6}|\d{4})\*[^*]*\*[^*]*\*(\d+)"
)

_TRANSACTION_SET_TYPES = [
    ("ST*837*", "837P"),
    ("ST*270*", "270"),
    ("ST*271*", "271"),
    ("ST*276*", "276"),
    ("ST*277*", "277"),
]


@dataclass
class EDIValidationResult:
    """Outcome of validate_edi."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def validate_edi(content: str, max_file_size: int = MAX_FILE_SIZE) -> EDIValidationResult:
    """Validate EDI content before submission.

    Args:
        content: Raw X12 content
        max_file_size: Size in characters above which a warning is raised

    Returns:
        EDIValidationResult; is_valid is False whenever a required
        segment marker is missing
    """
    errors = []
    warnings = []

    for marker, message in REQUIRED_MARKERS:
        if marker not in content:
            errors.append(message)

    if len(content) > max_file_size:
        warnings.append(
            f"File size exceeds {max_file_size:,} characters - consider splitting into multiple files"
        )

    if not any(marker in content for marker in DIAGNOSIS_MARKERS):
        warnings.append("No diagnosis codes found - this may cause claim rejection")

    warnings.extend(check_envelope(content))

    result = EDIValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
    logger.info(f"EDI validation completed: valid={result.is_valid}, "
                f"errors={len(errors)}, warnings={len(warnings)}")
    return result


def split_segments(content: str) -> List[List[str]]:
    """Split content into segments, each a list of elements."""
    segments = []
    for raw in content.split(EDISegmentBuilder.SEGMENT_TERMINATOR):
        raw = raw.strip()
        if raw:
            segments.append(raw.split(EDISegmentBuilder.ELEMENT_SEPARATOR))
    return segments


def check_envelope(content: str) -> List[str]:
    """Check envelope consistency of an interchange.

    Args:
        content: Raw X12 content

    Returns:
        List of warning messages (empty when consistent or not checkable)
    """
    warnings = []
    segments = split_segments(content)
    first: Dict[str, List[str]] = {}
    positions: Dict[str, int] = {}

    for index, elements in enumerate(segments):
        segment_id = elements[0]
        if segment_id not in first:
            first[segment_id] = elements
            positions[segment_id] = index

    def element(segment_id: str, position: int) -> Optional[str]:
        elements = first.get(segment_id)
        if elements is None or len(elements) <= position:
            return None
        return elements[position].strip()

    pairs = [
        ("ISA", 13, "IEA", 2),
        ("GS", 6, "GE", 2),
        ("ST", 2, "SE", 2),
    ]
    for header, header_pos, trailer, trailer_pos in pairs:
        header_value = element(header, header_pos)
        trailer_value = element(trailer, trailer_pos)
        if header_value and trailer_value and header_value != trailer_value:
            warnings.append(
                f"{header}/{trailer} control number mismatch: {header_value} != {trailer_value}"
            )

    declared_count = element("SE", 1)
    if declared_count and "ST" in positions and "SE" in positions:
        actual_count = positions["SE"] - positions["ST"] + 1
        if declared_count != str(actual_count):
            warnings.append(f"SE segment count is {declared_count}, actual count is {actual_count}")

    if "ISA" in first and positions["ISA"] == 0:
        isa_length = len(EDISegmentBuilder.ELEMENT_SEPARATOR.join(first["ISA"])) + 1
        if isa_length != EDISegmentBuilder.ISA_LENGTH:
            warnings.append(f"ISA segment length is {isa_length}, expected {EDISegmentBuilder.ISA_LENGTH}")

    return warnings


def extract_control_number(content: str) -> str:
    """Extract the interchange control number (ISA13).

    Args:
        content: Raw X12 content

    Returns:
        ISA13 digits, or "UNKNOWN" when no ISA header matches
    """
    match = _ISA_CONTROL_PATTERN.search(content)
    return match.group(1) if match else UNKNOWN_CONTROL_NUMBER


def detect_transaction_type(content: str) -> str:
    """Detect the transaction set carried by the content.

    Returns:
        One of 837P, 270, 271, 276, 277; anything else is treated as 835
    """
    for marker, transaction_type in _TRANSACTION_SET_TYPES:
        if marker in content:
            return transaction_type
    return "835"


def count_claims(content: str) -> int:
    """Count CLM segments in the content."""
    return content.count("CLM*")
