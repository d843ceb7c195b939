"""Format checks for the code sets carried on professional claims."""

import re
from typing import Optional

ICD10_PATTERN = re.compile(r"^[A-Z]\d{2}(\.?[0-9A-Z]{1,4})?$")
CPT_PATTERN = re.compile(r"^\d{5}$")
HCPCS_PATTERN = re.compile(r"^[A-Z]\d{4}$")
REVENUE_CODE_PATTERN = re.compile(r"^\d{4}$")
MODIFIER_PATTERN = re.compile(r"^[A-Z0-9]{2}$")
TAXONOMY_PATTERN = re.compile(r"^[0-9A-Z]{10}$")
NPI_PATTERN = re.compile(r"^\d{10}$")

# Issuer prefix applied to an NPI before the Luhn check
NPI_PREFIX = "80840"

# CMS place of service code set
PLACE_OF_SERVICE_CODES = frozenset([
    '01', '02', '03', '04', '05', '06', '07', '08', '09', '10',
    '11', '12', '13', '14', '15', '16', '17', '18', '19', '20',
    '21', '22', '23', '24', '25', '26', '31', '32', '33', '34',
    '41', '42', '49', '50', '51', '52', '53', '54', '55', '56',
    '57', '58', '60', '61', '62', '65', '71', '72', '81', '99'
])


def _normalize(code: Optional[str]) -> str:
    return str(code or "").strip().upper()


def is_valid_icd10(code: Optional[str]) -> bool:
    """ICD-10-CM: letter, two digits, optional decimal and up to four more characters."""
    return bool(ICD10_PATTERN.match(_normalize(code)))


def is_valid_cpt(code: Optional[str]) -> bool:
    return bool(CPT_PATTERN.match(_normalize(code)))


def is_valid_hcpcs(code: Optional[str]) -> bool:
    return bool(HCPCS_PATTERN.match(_normalize(code)))


def is_valid_procedure_code(code: Optional[str]) -> bool:
    """CPT (five digits) or HCPCS Level II (letter plus four digits)."""
    return is_valid_cpt(code) or is_valid_hcpcs(code)


def is_valid_revenue_code(code: Optional[str]) -> bool:
    """UB-04 revenue codes are four digits."""
    return bool(REVENUE_CODE_PATTERN.match(_normalize(code)))


def is_valid_modifier(modifier: Optional[str]) -> bool:
    return bool(MODIFIER_PATTERN.match(_normalize(modifier)))


def is_valid_place_of_service(code: Optional[str]) -> bool:
    return _normalize(code) in PLACE_OF_SERVICE_CODES


def is_valid_taxonomy(code: Optional[str]) -> bool:
    return bool(TAXONOMY_PATTERN.match(_normalize(code)))


def luhn_checksum_valid(digits: str) -> bool:
    """Check a digit string against the Luhn (mod 10) algorithm."""
    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def is_valid_npi(npi: Optional[str]) -> bool:
    """Ten digits passing the Luhn check with the 80840 prefix.

    Example:
        >>> is_valid_npi("1234567893")
        True
    """
    value = str(npi or "").strip()
    if not NPI_PATTERN.match(value):
        return False
    return luhn_checksum_valid(NPI_PREFIX + value)
