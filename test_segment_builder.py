#!/usr/bin/env python3
"""Test X12 segment construction and field formatting."""

import sys
from datetime import date, datetime
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from rcm_edi.edi.segment_builder import EDISegmentBuilder
from rcm_edi.utils.formatters import (
    clean_element,
    format_amount,
    format_date_yyyymmdd,
    format_diagnosis_code,
    format_phone,
    format_zip,
    parse_date,
    truncate_element,
)


def test_isa_is_fixed_width():
    isa = EDISegmentBuilder.build_isa("SUBMITTER", "CLAIMMD", "240115", "0930", "42")

    assert len(isa) == 106
    elements = isa.rstrip("~").split("*")
    assert len(elements) == 17
    assert elements[6] == "SUBMITTER      "
    assert elements[9] == "240115"
    assert elements[10] == "0930"
    assert elements[11] == "^"
    assert elements[13] == "000000042"
    assert elements[15] == "P"
    assert elements[16] == ":"


def test_isa_truncates_long_identifiers():
    isa = EDISegmentBuilder.build_isa("A" * 20, "B*C", "240115", "0930", "1", usage="T")

    assert len(isa) == 106
    assert isa.rstrip("~").split("*")[8] == "BC".ljust(15)


def test_build_segment_drops_trailing_empty_elements():
    assert EDISegmentBuilder.build_segment("HL", 1, "", "20", "1") == "HL*1**20*1~"
    assert EDISegmentBuilder.build_segment("REF", "EI", "", None) == "REF*EI~"


def test_build_segment_rejects_oversized_segment():
    with pytest.raises(ValueError):
        EDISegmentBuilder.build_segment("NTE", "ADD", "X" * 1000)


def test_build_nm1_omits_qualifier_without_identifier():
    assert EDISegmentBuilder.build_nm1("IL", "1", "Doe", "John", "MI", "") == "NM1*IL*1*Doe*John~"
    assert EDISegmentBuilder.build_nm1("40", "2", "CLAIM*MD", id_qualifier="46", identifier="CLAIMMD") == \
        "NM1*40*2*CLAIMMD*****46*CLAIMMD~"


def test_build_address():
    n3, n4 = EDISegmentBuilder.build_address("100 Main Street", "Springfield", "IL", "62701-1234")

    assert n3 == "N3*100 Main Street~"
    assert n4 == "N4*Springfield*IL*627011234~"


def test_build_hi_qualifiers():
    hi = EDISegmentBuilder.build_hi(["F32.9", "e11.9", "I10"])

    assert hi == "HI*ABK:F329*ABF:E119*ABF:I10~"


def test_build_hi_caps_at_twelve_codes():
    codes = [f"Z{n:02d}" for n in range(15)]

    assert EDISegmentBuilder.build_hi(codes).count("ABF:") == 11


def test_build_sv1_modifiers():
    sv1 = EDISegmentBuilder.build_sv1("99213", 75, modifiers=["25", "59", "GT", "95", "XS"], diagnosis_pointer="1:2")

    assert sv1 == "SV1*HC:99213:25:59:GT:95*75.00*UN*1***1:2~"


def test_validate_segment():
    assert EDISegmentBuilder.validate_segment("LX*1~") == []
    assert "Segment missing terminator (~)" in EDISegmentBuilder.validate_segment("LX*1")


def test_parse_date_formats():
    expected = date(2024, 1, 15)

    assert parse_date("2024-01-15") == expected
    assert parse_date("20240115") == expected
    assert parse_date("01/15/2024") == expected
    assert parse_date("01-15-2024") == expected
    assert parse_date("2024-01-15T10:30:00.000Z") == expected
    assert parse_date("2024-01-15 10:30:00") == expected
    assert parse_date(datetime(2024, 1, 15, 10, 30)) == expected
    assert parse_date(expected) == expected
    assert parse_date("15th January") is None
    assert parse_date(None) is None


def test_field_formatters():
    assert format_date_yyyymmdd("01/15/2024") == "20240115"
    assert format_date_yyyymmdd("") == ""
    assert format_amount(12.5) == "12.50"
    assert format_amount("10.005") == "10.01"
    assert format_amount("abc") == "0.00"
    assert format_amount(None) == "0.00"
    assert format_phone("(555) 123-4567") == "5551234567"
    assert format_phone("1-555-123-4567") == "5551234567"
    assert format_zip("62701") == "62701"
    assert format_zip("62701-1234") == "627011234"
    assert format_diagnosis_code("f32.9") == "F329"
    assert clean_element("A*B~C:D^E") == "ABCDE"
    assert clean_element(None) == ""
    assert truncate_element("ABCDEFG", 3) == "ABC"
