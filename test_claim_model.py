#!/usr/bin/env python3
"""Test claim normalization and claim file loading."""

import sys
import json
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from rcm_edi.models.claim import ClaimData
from rcm_edi.utils.claim_loader import load_claim_records, load_claims, parse_csv_to_claims


def test_from_camel_case_dict():
    claim = ClaimData.from_dict({
        "patientId": "P001",
        "patientName": "John Doe",
        "memberId": "M12345",
        "payerId": "PAYER01",
        "serviceDate": "2024-01-15",
        "totalCharges": "150.5",
        "procedureCodes": ["99213"],
        "diagnosisCodes": ["F32.9"],
        "providerNPI": "1234567893",
        "facilityNPI": "1245319599",
        "placeOfService": "22",
    })

    assert claim.patient_id == "P001"
    assert claim.total_charges == 150.5
    assert claim.procedure_codes == ["99213"]
    assert claim.facility_npi == "1245319599"
    assert claim.place_of_service == "22"


def test_from_snake_case_dict_with_delimited_codes():
    claim = ClaimData.from_dict({
        "patient_name": "Jane Roe",
        "procedure_codes": "99213; 85025|36415",
        "diagnosis_codes": "E11.9,I10",
        "modifiers": "25",
        "line_charges": "100;20.5;5",
    })

    assert claim.procedure_codes == ["99213", "85025", "36415"]
    assert claim.diagnosis_codes == ["E11.9", "I10"]
    assert claim.modifiers == ["25"]
    assert claim.line_charges == [100.0, 20.5, 5.0]


def test_defaults_for_missing_fields():
    claim = ClaimData.from_dict({})

    assert claim.facility_npi is None
    assert claim.place_of_service == "11"
    assert claim.total_charges == 0.0
    assert claim.procedure_codes == []


def test_invalid_charge_becomes_zero():
    assert ClaimData.from_dict({"totalCharges": "n/a"}).total_charges == 0.0


@pytest.mark.parametrize("amount", ["nan", "inf", "-inf", float("nan")])
def test_non_finite_charge_becomes_zero(amount):
    claim = ClaimData.from_dict({"totalCharges": amount, "lineCharges": [amount, "20.00"]})

    assert claim.total_charges == 0.0
    assert claim.line_charges == [0.0, 20.0]


def test_name_split():
    claim = ClaimData(patient_name="Mary Ann Smith")
    assert claim.first_name == "Mary"
    assert claim.last_name == "Ann"

    single = ClaimData(patient_name="Cher")
    assert single.first_name == "Cher"
    assert single.last_name == ""

    assert ClaimData().first_name == ""


def test_to_dict_round_trip():
    claim = ClaimData(patient_name="John Doe", procedure_codes=["99213"], total_charges=10.0)

    assert ClaimData.from_dict(claim.to_dict()) == claim


def test_parse_csv_to_claims(tmp_path):
    csv_file = tmp_path / "claims.csv"
    csv_file.write_text(
        "patient_id,patient_name,member_id,payer_id,service_date,total_charges,procedure_codes,diagnosis_codes,provider_npi\n"
        "P1,John Doe,M1,PAYER01,2024-01-15,150.00,99213;85025,F32.9,1234567893\n"
        "P2,Jane Roe,M2,PAYER01,2024-01-16,80.00,99212,I10,1234567893\n"
    )

    claims = parse_csv_to_claims(str(csv_file))

    assert len(claims) == 2
    assert claims[0].procedure_codes == ["99213", "85025"]
    assert claims[1].patient_name == "Jane Roe"
    assert claims[1].total_charges == 80.0


def test_load_claims_from_json_envelope(tmp_path):
    json_file = tmp_path / "claims.json"
    json_file.write_text(json.dumps({"data": [
        {"patientName": "John Doe", "totalCharges": 100},
        "not a claim",
    ]}))

    claims = load_claims(str(json_file))

    assert len(claims) == 1
    assert claims[0].last_name == "Doe"


def test_load_claims_from_json_list(tmp_path):
    json_file = tmp_path / "claims.json"
    json_file.write_text(json.dumps([{"patientName": "A B"}, {"patientName": "C D"}]))

    assert len(load_claim_records(str(json_file))) == 2


def test_load_claims_rejects_other_formats(tmp_path):
    xml_file = tmp_path / "claims.xml"
    xml_file.write_text("<claims/>")

    with pytest.raises(ValueError):
        load_claims(str(xml_file))

    scalar = tmp_path / "scalar.json"
    scalar.write_text("42")
    with pytest.raises(ValueError):
        load_claim_records(str(scalar))
