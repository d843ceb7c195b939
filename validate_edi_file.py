#!/usr/bin/env python3
"""Validate an EDI file for format compliance before submission."""

import sys
import re
from pathlib import Path

from rcm_edi.edi.validator import (
    count_claims,
    detect_transaction_type,
    extract_control_number,
    split_segments,
    validate_edi,
)

# Date elements that must be CCYYMMDD: segment id -> element position
DATE_ELEMENTS = {
    "DTP": 3,
    "DMG": 2,
}
DATE_PATTERN = re.compile(r'^\d{8}$')
ISO_DATE_PATTERN = re.compile(r'\d{4}-\d{2}-\d{2}')


def check_date_formats(content: str, limit: int = 500):
    """Find date elements not in CCYYMMDD format.

    Args:
        content: EDI content
        limit: Number of segments to inspect

    Returns:
        List of error messages
    """
    errors = []
    for i, elements in enumerate(split_segments(content)[:limit]):
        segment_id = elements[0]
        if ISO_DATE_PATTERN.search('*'.join(elements)):
            errors.append(f"Segment {i}: Contains ISO date format: {'*'.join(elements)[:50]}...")
            continue

        position = DATE_ELEMENTS.get(segment_id)
        if position is None or len(elements) <= position:
            continue

        value = elements[position]
        if value and not DATE_PATTERN.match(value):
            errors.append(f"{segment_id} segment {i}: Invalid date format '{value}' - must be YYYYMMDD")

    return errors


def validate_edi_file(file_path: str) -> bool:
    """Validate EDI file format and print a report.

    Args:
        file_path: Path to EDI file

    Returns:
        True when the file has no errors
    """
    print(f"\n{'='*60}")
    print(f"EDI FILE VALIDATION")
    print(f"{'='*60}")
    print(f"File: {file_path}\n")

    with open(file_path, 'r') as f:
        content = f.read()

    result = validate_edi(content)
    errors = list(result.errors) + check_date_formats(content)
    warnings = list(result.warnings)

    print(f"Transaction type:   {detect_transaction_type(content)}")
    print(f"Control number:     {extract_control_number(content)}")
    print(f"Total segments:     {len(split_segments(content))}")
    print(f"Claims (CLM):       {count_claims(content)}")

    # Summary
    print(f"\n{'='*60}")
    if errors:
        print(f"VALIDATION FAILED - {len(errors)} errors found:")
        for i, error in enumerate(errors[:10], 1):  # Show first 10 errors
            print(f"   {i}. {error}")
        if len(errors) > 10:
            print(f"   ... and {len(errors) - 10} more errors")
    else:
        print("VALIDATION PASSED - File format is correct")

    if warnings:
        print(f"\nWarnings ({len(warnings)}):")
        for warning in warnings[:5]:
            print(f"   {warning}")

    print(f"{'='*60}\n")

    return len(errors) == 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage: python validate_edi_file.py <edi_file>")
        sys.exit(1)

    file_path = sys.argv[1]
    if not Path(file_path).exists():
        print(f"File not found: {file_path}")
        sys.exit(1)

    success = validate_edi_file(file_path)
    sys.exit(0 if success else 1)
