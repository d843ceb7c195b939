#!/usr/bin/env python3
"""Process CSV file directly to a single EDI 837P interchange."""

import sys
import logging
from pathlib import Path
from datetime import datetime

from rcm_edi.config.settings import Settings
from rcm_edi.edi.generator import EDIGenerator
from rcm_edi.edi.validator import validate_edi
from rcm_edi.utils.claim_loader import parse_csv_to_claims

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main():
    """Main entry point for CSV to EDI processor."""

    if len(sys.argv) < 2:
        print("Usage: python process_csv_to_edi.py <csv_file>")
        return 1

    csv_file = sys.argv[1]

    if not Path(csv_file).exists():
        logger.error(f"CSV file not found: {csv_file}")
        return 1

    # Parse CSV
    logger.info(f"Processing CSV file: {csv_file}")
    claims = parse_csv_to_claims(csv_file)

    if not claims:
        logger.error("No claims found in CSV")
        return 1

    unique_patients = len(set(c.patient_id for c in claims))
    logger.info(f"Found {len(claims)} claims for {unique_patients} patients")

    settings = Settings()

    # Generate EDI
    logger.info("Generating EDI segments...")
    generator = EDIGenerator(settings)
    segments = generator.generate_from_claims(claims)
    content = ''.join(segments)

    validation = validate_edi(content, max_file_size=settings.validation.max_file_size)
    for warning in validation.warnings:
        logger.warning(f"  - {warning}")
    if not validation.is_valid:
        for error in validation.errors:
            logger.error(f"  - {error}")
        return 1

    # Create output filename
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = Path(settings.output.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_file = output_dir / f"{settings.output.file_prefix}_csv_{timestamp}.txt"

    # Write EDI file (single line, no newlines)
    with open(output_file, 'w') as f:
        f.write(content)

    # Report results
    file_size = output_file.stat().st_size
    logger.info("=" * 60)
    logger.info(f"EDI file generated: {output_file}")
    logger.info(f"   Control number: {generator.last_control_number}")
    logger.info(f"   File size: {file_size:,} bytes")
    logger.info(f"   Segments: {len(segments)}")
    logger.info(f"   Claims processed: {len(claims)}")
    logger.info("=" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())
