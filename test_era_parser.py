#!/usr/bin/env python3
"""Test 835 remittance parsing for payment posting."""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from rcm_edi.edi.era_parser import Adjustment, parse_835, parse_835_file, parse_adjustments, validate_era

SAMPLE_835 = "\n".join([
    "ISA*00*          *00*          *ZZ*PAYER01        *ZZ*SUBMITTER      "
    "*240201*0930*^*00501*000000321*0*P*:~",
    "GS*HP*PAYER01*SUBMITTER*20240201*0930*1*X*005010X221A1~",
    "ST*835*0001~",
    "BPR*I*215.00*C*ACH*CCP*01*011000015*DA*123456*1512345678**01*999999992*DA*987654*20240205~",
    "TRN*1*EFT0042*1512345678~",
    "N1*PR*ACME HEALTH PLAN*XV*PAYER01~",
    "N1*PE*PROVIDER NAME*XX*1234567893~",
    "LX*1~",
    "CLP*CLM-1001*1*250.00*180.00*20.00*12*PCN0001~",
    "CAS*CO*45*50.00~",
    "SVC*HC:99213:25*125.00*90.00**1~",
    "CAS*PR*2*10.00~",
    "CAS*CO*45*25.00~",
    "SVC*HC:85025*125.00*90.00**1~",
    "CAS*PR*2*10.00~",
    "CLP*CLM-1002*4*80.00*35.00*0.00*12*PCN0002~",
    "SE*15*0001~",
    "GE*1*1~",
    "IEA*1*000000321~",
])


def test_parse_payment_header():
    era = parse_835(SAMPLE_835)

    assert era.control_number == "000000321"
    assert era.payment_amount == 215.00
    assert era.credit_debit_flag == "C"
    assert era.payment_method == "ACH"
    assert era.payment_date == "20240205"
    assert era.trace_number == "EFT0042"
    assert (era.payer_name, era.payer_id) == ("ACME HEALTH PLAN", "PAYER01")
    assert (era.payee_name, era.payee_npi) == ("PROVIDER NAME", "1234567893")


def test_parse_claim_payments():
    era = parse_835(SAMPLE_835)

    assert [c.claim_id for c in era.claims] == ["CLM-1001", "CLM-1002"]
    assert era.total_paid == 215.00

    claim = era.find_claim("CLM-1001")
    assert claim.status_code == "1"
    assert (claim.charge_amount, claim.paid_amount, claim.patient_responsibility) == (250.00, 180.00, 20.00)
    assert claim.payer_claim_number == "PCN0001"
    assert claim.adjustments == [Adjustment("CO", "45", 50.00)]
    assert len(claim.service_lines) == 2

    first, second = claim.service_lines
    assert (first.procedure_code, first.modifiers) == ("99213", ["25"])
    assert (first.charge_amount, first.paid_amount, first.units) == (125.00, 90.00, 1.0)
    assert first.adjustments == [Adjustment("PR", "2", 10.00), Adjustment("CO", "45", 25.00)]
    assert second.adjustments == [Adjustment("PR", "2", 10.00)]
    assert claim.total_adjustments == 95.00

    assert era.find_claim("CLM-1002").service_lines == []
    assert era.find_claim("CLM-9999") is None


def test_parse_adjustments_reads_every_trio():
    elements = "CAS*CO*45*12.50*1*253*0.75**97*3.00".split("*")

    assert parse_adjustments(elements) == [
        Adjustment("CO", "45", 12.50, 1.0),
        Adjustment("CO", "253", 0.75),
        Adjustment("CO", "97", 3.00),
    ]


def test_bad_amounts_and_short_segments():
    era = parse_835("CLP*CLM-1*1*abc*nan~SVC*HC:99213~")

    claim = era.claims[0]
    assert (claim.charge_amount, claim.paid_amount) == (0.0, 0.0)
    assert claim.service_lines[0].procedure_code == "99213"
    assert claim.service_lines[0].units == 1.0


def test_valid_remittance():
    result = validate_era(parse_835(SAMPLE_835))

    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []


def test_remittance_problems():
    content = (SAMPLE_835
               .replace("N1*PR*ACME HEALTH PLAN*XV*PAYER01~", "")
               .replace("BPR*I*215.00", "BPR*I*200.00")
               .replace("CLP*CLM-1002*4*80.00*35.00", "CLP**4*30.00*35.00"))
    result = validate_era(parse_835(content))

    assert not result.is_valid
    assert result.errors == ["Missing payer information", "Payment 2: Missing claim number"]
    assert result.warnings == [
        "Payment 2: Payment exceeds total charges",
        "Payment amount 200.00 does not match claim payments 215.00",
    ]


def test_empty_remittance():
    result = validate_era(parse_835(""))

    assert result.errors == [
        "Missing ERA header information",
        "Missing payer information",
        "No payment records found in ERA file",
    ]


def test_parse_835_file(tmp_path):
    era_file = tmp_path / "remit.835"
    era_file.write_text(SAMPLE_835)

    assert len(parse_835_file(str(era_file)).claims) == 2
