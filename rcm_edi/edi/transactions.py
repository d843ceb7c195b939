"""Turn generated or received EDI content into transaction records."""

import logging
from pathlib import Path
from typing import Optional

from ..models.transaction import EDITransaction, STATUS_ERROR, STATUS_PENDING
from .validator import (
    MAX_FILE_SIZE,
    count_claims,
    detect_transaction_type,
    extract_control_number,
    validate_edi,
)

logger = logging.getLogger(__name__)


def process_edi_content(
    content: str,
    file_size: Optional[int] = None,
    max_file_size: int = MAX_FILE_SIZE
) -> EDITransaction:
    """Validate EDI content and build its transaction record.

    Args:
        content: Raw X12 content
        file_size: Size in bytes of the source file (default: content length)
        max_file_size: Size threshold passed to the validator

    Returns:
        EDITransaction with status 'pending' when valid, 'error' otherwise
    """
    validation = validate_edi(content, max_file_size=max_file_size)

    transaction = EDITransaction(
        transaction_type=detect_transaction_type(content),
        control_number=extract_control_number(content),
        status=STATUS_PENDING if validation.is_valid else STATUS_ERROR,
        file_size=len(content) if file_size is None else file_size,
        record_count=count_claims(content),
        errors=validation.errors,
        warnings=validation.warnings,
    )

    if validation.is_valid:
        logger.info(f"EDI transaction {transaction.id} processed successfully "
                    f"({transaction.transaction_type}, control {transaction.control_number})")
    else:
        logger.error(f"EDI transaction {transaction.id} contains {len(validation.errors)} errors")

    return transaction


def process_edi_file(path: str, max_file_size: int = MAX_FILE_SIZE) -> EDITransaction:
    """Read an EDI file from disk and build its transaction record.

    Raises:
        OSError: If the file cannot be read
    """
    file_path = Path(path)
    content = file_path.read_text(encoding='utf-8', errors='replace')
    return process_edi_content(content, file_size=file_path.stat().st_size, max_file_size=max_file_size)


def record_generated_claim(content: str, max_file_size: int = MAX_FILE_SIZE) -> EDITransaction:
    """Build the transaction record for a freshly generated 837P claim."""
    validation = validate_edi(content, max_file_size=max_file_size)
    return EDITransaction(
        transaction_type="837P",
        control_number=extract_control_number(content),
        status=STATUS_PENDING if validation.is_valid else STATUS_ERROR,
        file_size=len(content),
        record_count=1,
        errors=validation.errors,
        warnings=validation.warnings,
    )
