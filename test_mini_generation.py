#!/usr/bin/env python3
"""Test EDI generation with minimal data to verify format correctness."""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from rcm_edi.config.settings import Settings
from rcm_edi.edi.generator import EDIGenerator
from rcm_edi.edi.validator import extract_control_number, validate_edi
from rcm_edi.models.claim import ClaimData
from rcm_edi.utils.counter_manager import EDICounterManager

TEST_CLAIM = {
    "patientId": "P001",
    "patientName": "John Doe",
    "memberId": "M12345",
    "payerId": "PAYER01",
    "serviceDate": "2024-01-15",
    "totalCharges": 250.00,
    "procedureCodes": ["99213", "85025"],
    "diagnosisCodes": ["F32.9", "E11.9"],
    "providerNPI": "1234567893",
    "placeOfService": "11",
}


def make_generator(tmp_path):
    settings = Settings()
    settings.output.counter_dir = str(tmp_path / "counters")
    return EDIGenerator(settings)


def segment_ids(segments):
    return [s.split("*", 1)[0] for s in segments]


def test_minimal_edi_generation(tmp_path):
    """Envelope structure and control numbers of a single-claim interchange."""
    generator = make_generator(tmp_path)
    segments = generator.generate_segments(TEST_CLAIM)

    # Check ISA segment
    isa_segment = segments[0]
    assert len(isa_segment) == 106, f"ISA length error: {len(isa_segment)}"
    isa_control = isa_segment.rstrip("~").split("*")[13]
    assert isa_control == "000000001"

    # Check GS and ST control numbers
    gs_control = segments[1].rstrip("~").split("*")[6]
    st_control = segments[2].rstrip("~").split("*")[2]
    assert gs_control == "1", f"GS control should be '1', got '{gs_control}'"
    assert st_control == "0001", f"ST control should be '0001', got '{st_control}'"

    # Check trailers
    se_parts = segments[-3].rstrip("~").split("*")
    ge_parts = segments[-2].rstrip("~").split("*")
    iea_parts = segments[-1].rstrip("~").split("*")
    assert se_parts[0] == "SE" and se_parts[2] == st_control, "SE/ST control number mismatch"
    assert ge_parts == ["GE", "1", gs_control], "GE/GS control number mismatch"
    assert iea_parts == ["IEA", "1", isa_control], "IEA/ISA control number mismatch"

    # SE01 counts ST through SE inclusive
    ids = segment_ids(segments)
    assert se_parts[1] == str(ids.index("SE") - ids.index("ST") + 1)

    assert generator.validate_output(segments) == []


def test_required_markers_appear_exactly_once(tmp_path):
    content = make_generator(tmp_path).generate_837p(TEST_CLAIM)

    for marker in ["ISA*", "GS*", "ST*837*", "SE*", "GE*", "IEA*", "NM1*85*", "CLM*"]:
        assert content.count(marker) == 1, f"{marker} should appear exactly once"

    assert "\n" not in content
    assert content.endswith("~")


def test_uppercase_name_ending_in_se_keeps_one_envelope(tmp_path):
    """A last name like ROSE is followed by an element separator, so the raw text
    holds an extra "SE*" even though only one SE segment is emitted.
    """
    content = make_generator(tmp_path).generate_837p(dict(TEST_CLAIM, patientName="MARY ROSE"))

    assert "NM1*IL*1*ROSE*MARY****MI*M12345~" in content
    assert content.count("SE*") == 2
    assert segment_ids(content.rstrip("~").split("~")).count("SE") == 1
    assert validate_edi(content).is_valid


def test_generated_content_passes_validation(tmp_path):
    content = make_generator(tmp_path).generate_837p(TEST_CLAIM)
    result = validate_edi(content)

    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []


def test_control_number_round_trip(tmp_path):
    generator = make_generator(tmp_path)

    first = generator.generate_837p(TEST_CLAIM)
    assert extract_control_number(first) == generator.last_control_number == "000000001"

    second = generator.generate_837p(TEST_CLAIM)
    assert extract_control_number(second) == "000000002"


def test_segment_order(tmp_path):
    claim = dict(TEST_CLAIM, dateOfBirth="1980-05-17", gender="male", facilityNPI="1234567893")
    ids = segment_ids(make_generator(tmp_path).generate_segments(claim))

    expected = [
        "ISA", "GS", "ST", "BHT", "NM1", "PER", "NM1", "HL", "PRV", "NM1", "N3", "N4", "REF",
        "HL", "SBR", "NM1", "DMG", "NM1", "CLM", "DTP", "HI", "NM1",
        "LX", "SV1", "DTP", "LX", "SV1", "DTP",
        "SE", "GE", "IEA",
    ]
    assert ids == expected


def test_claim_segments_content(tmp_path):
    claim = dict(TEST_CLAIM, modifiers=["25"], claimId="CLM-1001")
    segments = make_generator(tmp_path).generate_segments(claim)

    assert "NM1*IL*1*Doe*John****MI*M12345~" in segments
    assert "NM1*PR*2*PAYER*****PI*PAYER01~" in segments
    assert "NM1*85*2*PROVIDER NAME*****XX*1234567893~" in segments
    assert "CLM*CLM-1001*250.00***11:B:1*Y*A*Y*I~" in segments
    assert "DTP*431*D8*20240115~" in segments
    assert "HI*ABK:F329*ABF:E119~" in segments

    sv1 = [s for s in segments if s.startswith("SV1*")]
    assert sv1 == [
        "SV1*HC:99213:25*125.00*UN*1***1:2~",
        "SV1*HC:85025*125.00*UN*1***1:2~",
    ]
    # No DMG without a date of birth, no NM1*77 without a facility NPI
    assert not any(s.startswith("DMG*") for s in segments)
    assert not any(s.startswith("NM1*77*") for s in segments)


def test_missing_diagnosis_uses_default_code(tmp_path):
    claim = dict(TEST_CLAIM, diagnosisCodes=[])
    segments = make_generator(tmp_path).generate_segments(claim)

    assert "HI*ABK:Z0000~" in segments


def test_line_charges_sum_to_claim_total():
    claim = ClaimData(total_charges=100.00, procedure_codes=["99213", "85025", "36415"])
    charges = EDIGenerator.allocate_line_charges(claim)

    assert charges == [33.33, 33.33, 33.34]
    assert round(sum(charges), 2) == 100.00


def test_explicit_line_charges_are_used():
    claim = ClaimData(total_charges=150.00, procedure_codes=["99213", "85025"], line_charges=[120.0, 30.0])

    assert EDIGenerator.allocate_line_charges(claim) == [120.0, 30.0]


def test_batch_groups_claims_under_billing_provider(tmp_path):
    claims = [
        TEST_CLAIM,
        dict(TEST_CLAIM, patientName="Jane Roe", memberId="M99999"),
        dict(TEST_CLAIM, providerNPI="1245319599"),
    ]
    generator = make_generator(tmp_path)
    segments = generator.generate_from_claims(claims)

    hl_segments = [s for s in segments if s.startswith("HL*")]
    assert hl_segments == [
        "HL*1**20*1~",
        "HL*2*1*22*0~",
        "HL*3*1*22*0~",
        "HL*4**20*1~",
        "HL*5*4*22*0~",
    ]
    assert sum(1 for s in segments if s.startswith("CLM*")) == 3
    assert generator.validate_output(segments) == []


def test_generator_uses_injected_counter(tmp_path):
    counter_mgr = EDICounterManager(str(tmp_path / "shared"))
    counter_mgr.set_interchange_counter(1234)

    generator = EDIGenerator(Settings(), counter_manager=counter_mgr)
    content = generator.generate_837p(ClaimData.from_dict(TEST_CLAIM))

    assert extract_control_number(content) == "000001234"
    assert "IEA*1*000001234~" in content
    assert "BHT*0019*00*000001234*" in content


def test_empty_claim_still_produces_one_envelope(tmp_path):
    segments = make_generator(tmp_path).generate_segments({})
    ids = segment_ids(segments)

    for segment_id in ["ISA", "GS", "ST", "SE", "GE", "IEA", "CLM"]:
        assert ids.count(segment_id) == 1, f"{segment_id} should appear exactly once"
    assert "LX" not in ids


def test_non_finite_charges_generate_zero_amounts(tmp_path):
    generator = make_generator(tmp_path)

    for amount in ["nan", "inf"]:
        segments = generator.generate_segments(dict(TEST_CLAIM, totalCharges=amount))
        clm = [s for s in segments if s.startswith("CLM*")]
        sv1 = [s for s in segments if s.startswith("SV1*")]

        assert len(clm) == 1
        assert clm[0].split("*")[2] == "0.00", f"totalCharges={amount}"
        assert all("*0.00*UN*" in s for s in sv1)
        assert generator.validate_output(segments) == []
