"""Load claim records from JSON or CSV exports."""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from ..models.claim import ClaimData

logger = logging.getLogger(__name__)


def _read_json_records(json_file: str) -> List[Dict[str, Any]]:
    """Read a JSON list of claims, or a {"data": [...]} / {"claims": [...]} envelope."""
    with open(json_file, 'r', encoding='utf-8') as f:
        document: Any = json.load(f)

    if isinstance(document, dict):
        document = document.get("data", document.get("claims", [document]))

    if not isinstance(document, list):
        raise ValueError(f"Expected a list of claims in {json_file}")

    return [d for d in document if isinstance(d, dict)]


def _read_csv_records(csv_file: str) -> List[Dict[str, Any]]:
    with open(csv_file, 'r', encoding='utf-8', newline='') as f:
        return list(csv.DictReader(f))


def load_claim_records(path: str) -> List[Dict[str, Any]]:
    """Load raw claim dictionaries from a .csv or .json file.

    Raises:
        ValueError: For unsupported file types or malformed JSON documents
    """
    suffix = Path(path).suffix.lower()
    if suffix == ".csv":
        return _read_csv_records(path)
    if suffix == ".json":
        return _read_json_records(path)
    raise ValueError(f"Unsupported claim file type: {suffix or path}")


def parse_csv_to_claims(csv_file: str) -> List[ClaimData]:
    """Parse CSV file into claims.

    Code list columns (procedure_codes, diagnosis_codes, modifiers,
    line_charges) hold values separated by ';', ',' or '|'.

    Args:
        csv_file: Path to CSV file

    Returns:
        List of ClaimData
    """
    claims = [ClaimData.from_dict(row) for row in _read_csv_records(csv_file)]
    logger.info(f"Parsed {len(claims)} claims from {csv_file}")
    return claims


def load_claims(path: str) -> List[ClaimData]:
    """Load claims from a .csv or .json file, chosen by extension."""
    claims = [ClaimData.from_dict(record) for record in load_claim_records(path)]
    logger.info(f"Loaded {len(claims)} claims from {path}")
    return claims
