#!/usr/bin/env python3
"""RCM EDI Toolkit - Main Entry Point

This script generates X12 EDI 837P professional claim files from claim
records held in MongoDB or exported to JSON/CSV, validates EDI files
before clearinghouse submission, and reports A/R aging.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import List, Optional, Tuple

from rcm_edi.config.settings import Settings
from rcm_edi.database.connection import DatabaseConnection
from rcm_edi.edi.era_parser import parse_835_file, validate_era
from rcm_edi.edi.generator import EDIGenerator
from rcm_edi.edi.transactions import process_edi_content, process_edi_file, record_generated_claim
from rcm_edi.models.claim import ClaimData
from rcm_edi.reports.ar_aging import build_aging_report
from rcm_edi.utils.claim_loader import load_claims, load_claim_records
from rcm_edi.utils.counter_manager import EDICounterManager
from rcm_edi.validation.claim_validator import ClaimValidator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_date_range(date_range_str: str) -> Tuple[str, str]:
    """Parse date range string into start and end dates.

    Args:
        date_range_str: Date range in format "YYYY-MM-DD:YYYY-MM-DD"

    Returns:
        Tuple of (start_date, end_date) as YYYY-MM-DD strings

    Raises:
        ValueError: If date format is invalid
    """
    parts = date_range_str.split(':')
    if len(parts) != 2:
        raise ValueError("Date range must be in format YYYY-MM-DD:YYYY-MM-DD")

    try:
        start_date = datetime.strptime(parts[0], "%Y-%m-%d").strftime("%Y-%m-%d")
        end_date = datetime.strptime(parts[1], "%Y-%m-%d").strftime("%Y-%m-%d")
    except ValueError as e:
        raise ValueError(f"Invalid date range format: {e}")

    return start_date, end_date


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Generate and validate X12 EDI 837P professional claim files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --input claims.json
  %(prog)s --input claims.csv --batch --scrub
  %(prog)s --claim-ids "CLM1,CLM2" --save-transactions
  %(prog)s --payer-id PAYER001 --date-range "2024-01-01:2024-01-31"
  %(prog)s --validate 837_output/837P_000000012.txt
  %(prog)s --era remittance_835.txt
  %(prog)s --ar-aging
  %(prog)s --show-counters
        """
    )

    # Claim sources
    parser.add_argument(
        "--input",
        type=str,
        help="JSON or CSV file of claims (default: query MongoDB)"
    )

    parser.add_argument(
        "--claim-ids",
        type=str,
        help="Comma-separated list of claim IDs"
    )

    parser.add_argument(
        "--payer-id",
        type=str,
        help="Only claims for this payer"
    )

    parser.add_argument(
        "--date-range",
        type=str,
        help="Service date range in YYYY-MM-DD:YYYY-MM-DD format"
    )

    parser.add_argument(
        "--statuses",
        type=str,
        help="Comma-separated list of claim statuses"
    )

    parser.add_argument(
        "--limit",
        type=int,
        help="Maximum number of claims to process"
    )

    # Output options
    parser.add_argument(
        "--output",
        type=str,
        help="Output file path (batch or single claim only; default: auto-generated)"
    )

    parser.add_argument(
        "--output-dir",
        type=str,
        help="Output directory (default: 837_output)"
    )

    parser.add_argument(
        "--batch",
        action="store_true",
        help="Put all claims into a single interchange"
    )

    parser.add_argument(
        "--scrub",
        action="store_true",
        help="Run the claim scrubber and skip claims with errors"
    )

    parser.add_argument(
        "--save-transactions",
        action="store_true",
        help="Store EDI transaction records in MongoDB"
    )

    # Other modes
    parser.add_argument(
        "--validate",
        type=str,
        metavar="EDI_FILE",
        help="Validate an EDI file and exit"
    )

    parser.add_argument(
        "--era",
        type=str,
        metavar="ERA_FILE",
        help="Parse an 835 remittance file and print its claim payments"
    )

    parser.add_argument(
        "--ar-aging",
        action="store_true",
        help="Print A/R aging buckets for outstanding claims"
    )

    # Configuration
    parser.add_argument(
        "--config",
        type=str,
        help="Path to JSON configuration file"
    )

    parser.add_argument(
        "--save-config",
        type=str,
        help="Save current configuration to specified file"
    )

    # Database options
    parser.add_argument(
        "--mongodb-uri",
        type=str,
        help="MongoDB connection URI"
    )

    parser.add_argument(
        "--database",
        type=str,
        help="MongoDB database name"
    )

    # Debug options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Load and scrub claims without generating output files"
    )

    # Counter management options
    parser.add_argument(
        "--show-counters",
        action="store_true",
        help="Display current EDI control number counter values"
    )

    parser.add_argument(
        "--reset-counters",
        action="store_true",
        help="Reset interchange control number counter to 1 (requires confirmation)"
    )

    parser.add_argument(
        "--set-interchange",
        type=int,
        help="Set interchange control number to specific value"
    )

    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    """Load settings and apply command line overrides."""
    settings = Settings(config_file=args.config)

    if args.mongodb_uri:
        settings.database.uri = args.mongodb_uri
    if args.database:
        settings.database.database_name = args.database
    if args.output_dir:
        settings.output.output_dir = args.output_dir

    return settings


def show_counters(counter_mgr: EDICounterManager) -> int:
    counters = counter_mgr.get_current_values()
    print("\n" + "=" * 50)
    print("EDI Control Numbers:")
    print("=" * 50)
    print(f"  Interchange Control Number: {counters['interchange_control_number']:09d}")
    print(f"  Group Control Number:        {counter_mgr.get_group_number()} (static)")
    print(f"  Transaction Control Number:  {counter_mgr.get_transaction_number()} (static)")
    print(f"  Last Updated:                {counters.get('last_updated', 'N/A')}")
    if 'reset_at' in counters:
        print(f"  Last Reset:                  {counters['reset_at']}")
    print("=" * 50)
    return 0


def validate_file(path: str, settings: Settings, db: Optional[DatabaseConnection]) -> int:
    """Validate an EDI file, print the findings and optionally record it."""
    if not Path(path).exists():
        logger.error(f"EDI file not found: {path}")
        return 1

    transaction = process_edi_file(path, max_file_size=settings.validation.max_file_size)

    print(f"\n{'=' * 60}")
    print(f"EDI VALIDATION: {path}")
    print(f"{'=' * 60}")
    print(f"  Transaction type: {transaction.transaction_type}")
    print(f"  Control number:   {transaction.control_number}")
    print(f"  File size:        {transaction.file_size:,} bytes")
    print(f"  Claims:           {transaction.record_count}")
    print(f"  Status:           {transaction.status}")
    for error in transaction.errors:
        print(f"  ERROR:   {error}")
    for warning in transaction.warnings:
        print(f"  WARNING: {warning}")
    print(f"{'=' * 60}\n")

    if db is not None:
        db.save_transaction(transaction)

    return 0 if not transaction.errors else 1


def print_remittance(path: str) -> int:
    """Parse an 835 file and print what would be posted."""
    if not Path(path).exists():
        logger.error(f"ERA file not found: {path}")
        return 1

    era = parse_835_file(path)
    result = validate_era(era)

    print(f"\n{'=' * 60}")
    print(f"ERA REMITTANCE: {path}")
    print(f"{'=' * 60}")
    print(f"  Control number: {era.control_number}")
    print(f"  Payer:          {era.payer_name} ({era.payer_id})")
    print(f"  Payment:        ${era.payment_amount:,.2f} {era.payment_method} {era.payment_date}")
    print(f"  Trace number:   {era.trace_number}")
    for claim in era.claims:
        print(f"  {claim.claim_id:<20} status {claim.status_code:<3} "
              f"charged ${claim.charge_amount:>10,.2f}  paid ${claim.paid_amount:>10,.2f}  "
              f"patient ${claim.patient_responsibility:>8,.2f}  adjusted ${claim.total_adjustments:>8,.2f}")
    for error in result.errors:
        print(f"  ERROR:   {error}")
    for warning in result.warnings:
        print(f"  WARNING: {warning}")
    print(f"{'=' * 60}\n")

    return 0 if result.is_valid else 1


def print_aging_report(report: dict):
    print(f"\n{'=' * 60}")
    print(f"A/R AGING as of {report['as_of']}")
    print(f"{'=' * 60}")
    for label, bucket in report["buckets"].items():
        print(f"  {label:>7}: {bucket['count']:>5} claims  ${bucket['amount']:>14,.2f}  {bucket['percentage']:>5.1f}%")
    print(f"  {'Total':>7}: {report['total_count']:>5} claims  ${report['total_amount']:>14,.2f}")
    if report["skipped"]:
        print(f"  Skipped {report['skipped']} claims without a usable date")
    print(f"{'=' * 60}\n")


def scrub_claims(claims: List[ClaimData], settings: Settings) -> List[ClaimData]:
    """Drop claims the scrubber rejects, logging each finding."""
    validator = ClaimValidator(settings.validation)
    accepted = []

    for claim in claims:
        result = validator.validate(claim)
        label = claim.claim_id or claim.patient_id or claim.patient_name
        for issue in result.warnings:
            logger.warning(f"Claim {label}: [{issue.code}] {issue.message}")
        if result.is_valid:
            accepted.append(claim)
        else:
            for issue in result.errors:
                logger.error(f"Claim {label}: [{issue.code}] {issue.message}")

    logger.info(f"Scrubber accepted {len(accepted)} of {len(claims)} claims")
    return accepted


def write_interchange(content: str, settings: Settings, control_number: str, output_path: Optional[str]) -> Path:
    """Write an interchange to disk as a single line."""
    if not output_path:
        name = f"{settings.output.file_prefix}_{control_number}"
        if settings.output.use_timestamp:
            name += f"_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        output_path = f"{settings.output.output_dir}/{name}.txt"

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if settings.output.write_newlines:
        content = content.replace("~", "~\n")

    with open(path, 'w') as f:
        f.write(content)
    return path


def generate(args: argparse.Namespace, claims: List[ClaimData], settings: Settings,
             db: Optional[DatabaseConnection]) -> int:
    """Generate 837P files for the selected claims."""
    if args.output and not args.batch and len(claims) > 1:
        logger.error("--output requires --batch when generating more than one claim")
        return 1

    generator = EDIGenerator(settings, EDICounterManager(settings.output.counter_dir))
    batches = [claims] if args.batch else [[claim] for claim in claims]
    failures = 0

    for batch in batches:
        segments = generator.generate_from_claims(batch)
        content = ''.join(segments)

        if len(batch) == 1:
            transaction = record_generated_claim(content, max_file_size=settings.validation.max_file_size)
        else:
            transaction = process_edi_content(content, max_file_size=settings.validation.max_file_size)

        if settings.output.validate_output:
            for error in generator.validate_output(segments):
                logger.error(f"  - {error}")
                transaction.errors.append(error)

        if transaction.errors:
            failures += 1
            transaction.mark("error")
            logger.error(f"Interchange {generator.last_control_number} failed validation")

        path = write_interchange(content, settings, generator.last_control_number, args.output)
        logger.info(f"EDI file generated: {path} ({path.stat().st_size:,} bytes, "
                    f"{len(segments)} segments, {len(batch)} claims)")

        if db is not None:
            db.save_transaction(transaction)

    return 1 if failures else 0


def main() -> int:
    """Main entry point for the EDI toolkit.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args()

    # Set logging level
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = load_settings(args)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    # Save configuration if requested
    if args.save_config:
        settings.save_to_file(args.save_config)
        logger.info(f"Configuration saved to {args.save_config}")

    # Handle counter management operations first (no database needed)
    if args.show_counters:
        return show_counters(EDICounterManager(settings.output.counter_dir))

    if args.reset_counters:
        response = input("\nAre you sure you want to reset the interchange counter to 1? (yes/no): ")
        if response.lower() == 'yes':
            EDICounterManager(settings.output.counter_dir).reset_counters(confirm=True)
            print("Interchange counter has been reset successfully")
        else:
            print("Counter reset cancelled")
        return 0

    if args.set_interchange is not None:
        try:
            EDICounterManager(settings.output.counter_dir).set_interchange_counter(args.set_interchange)
        except ValueError as e:
            logger.error(str(e))
            return 1
        print(f"Interchange control number set to {args.set_interchange}")
        return 0

    # Database is needed to read claims or to store transactions
    needs_db = args.save_transactions or (not args.input and not args.validate and not args.era)
    db = None
    if needs_db:
        db = DatabaseConnection(settings.database)
        if not db.connect():
            logger.error("Failed to connect to database")
            return 1

    try:
        if args.validate:
            return validate_file(args.validate, settings, db if args.save_transactions else None)

        if args.era:
            return print_remittance(args.era)

        if args.ar_aging:
            if args.input:
                records = load_claim_records(args.input)
            else:
                records = db.get_outstanding_claims(limit=args.limit)
            report = build_aging_report(records)
            if args.debug:
                logger.debug(json.dumps(report, indent=2))
            print_aging_report(report)
            return 0

        # Load claims
        if args.input:
            claims = load_claims(args.input)
            if args.limit:
                claims = claims[:args.limit]
        else:
            if not db.validate_collections():
                logger.error("Required database collections not found")
                return 1

            claim_ids = [c.strip() for c in args.claim_ids.split(",")] if args.claim_ids else None
            statuses = [s.strip() for s in args.statuses.split(",")] if args.statuses else None
            date_range = parse_date_range(args.date_range) if args.date_range else None

            logger.info("=" * 60)
            logger.info("Querying claims from database...")
            logger.info("=" * 60)

            claims = db.get_claims(
                claim_ids=claim_ids,
                payer_id=args.payer_id,
                date_range=date_range,
                statuses=statuses,
                limit=args.limit
            )

        if not claims:
            logger.warning("No claims found matching criteria")
            return 0

        logger.info(f"Found {len(claims)} claims to process")

        if args.scrub:
            claims = scrub_claims(claims, settings)
            if not claims:
                logger.error("No claims passed the scrubber")
                return 1

        if args.dry_run:
            logger.info("Dry run mode - no output generated")
            logger.info(f"Would process {len(claims)} claims")
            return 0

        return generate(args, claims, settings, db if args.save_transactions else None)

    except (OSError, ValueError) as e:
        logger.error(f"Error processing claims: {e}", exc_info=args.debug)
        return 1

    finally:
        if db is not None:
            db.close()


if __name__ == "__main__":
    sys.exit(main())
