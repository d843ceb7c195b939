"""Configuration settings for the RCM EDI toolkit.

This module handles all configuration for 837P generation, EDI validation
and claim scrubbing, including MongoDB connection, X12 envelope identifiers
and output locations.
"""

import os
from dataclasses import dataclass, asdict, fields
from typing import Optional, List
from pathlib import Path
import json
import logging

logger = logging.getLogger(__name__)


@dataclass
class SubmitterConfig:
    """Loop 1000A submitter information."""
    name: str = "PRACTICE NAME"
    identifier: str = "1234567890"
    id_qualifier: str = "46"  # 46=Electronic Transmitter ID
    contact_name: str = "CONTACT NAME"
    contact_phone: str = "5551234567"


@dataclass
class BillingProviderConfig:
    """Loop 2010AA billing provider information."""
    name: str = "PROVIDER NAME"
    taxonomy_code: str = "207Q00000X"
    tax_id: str = "123456789"
    address: str = "100 Main Street"
    city: str = "Springfield"
    state: str = "IL"
    zip_code: str = "627010000"


@dataclass
class EDIConfig:
    """Configuration for EDI formatting and identifiers."""
    # ISA/IEA Level
    interchange_sender_id: str = "SUBMITTER"
    interchange_receiver_id: str = "CLAIMMD"
    usage_indicator: str = "P"  # P=Production, T=Test
    acknowledgment_requested: str = "0"

    # GS/GE Level
    functional_group_sender: str = "SUBMITTER"
    functional_group_receiver: str = "CLAIMMD"

    # ST/SE Level
    implementation_version: str = "005010X222A1"

    # 1000B Receiver
    receiver_name: str = "CLAIM MD"
    receiver_id: str = "CLAIMMD"

    # Claim defaults
    payer_name: str = "PAYER"
    default_diagnosis_code: str = "Z00.00"
    default_place_of_service: str = "11"
    claim_frequency_code: str = "1"
    subscriber_relationship: str = "18"  # 18=Self
    claim_filing_indicator: str = "CI"  # CI=Commercial Insurance


@dataclass
class DatabaseConfig:
    """Configuration for MongoDB database connection."""
    uri: str = "mongodb://localhost:27017/"
    database_name: str = "rcm"

    # Collection names
    claim_collection: str = "claims"
    transaction_collection: str = "edi_transactions"

    # Query settings
    default_limit: int = 1000
    timeout_ms: int = 30000


@dataclass
class OutputConfig:
    """Configuration for output file generation."""
    output_dir: str = "837_output"
    file_prefix: str = "837P"
    counter_dir: str = "837_output/.counters"
    use_timestamp: bool = True
    write_newlines: bool = False  # Segments must stay on a single line
    validate_output: bool = True


@dataclass
class ValidationConfig:
    """Thresholds for EDI validation and claim scrubbing."""
    max_file_size: int = 1_000_000
    timely_filing_days: int = 365
    max_procedure_lines: int = 4
    common_places_of_service: List[str] = None

    def __post_init__(self):
        if self.common_places_of_service is None:
            self.common_places_of_service = ["11", "21", "22", "23", "24"]


def _usage_indicator(value: str) -> str:
    return value.strip().upper()[:1]


# Environment variable suffix -> (section, attributes, converter)
_ENV_OVERRIDES = [
    ("MONGODB_URI", "database", ["uri"], str),
    ("DATABASE_NAME", "database", ["database_name"], str),
    ("OUTPUT_DIR", "output", ["output_dir"], str),
    ("COUNTER_DIR", "output", ["counter_dir"], str),
    ("SENDER_ID", "edi", ["interchange_sender_id", "functional_group_sender"], str),
    ("RECEIVER_ID", "edi", ["interchange_receiver_id", "functional_group_receiver"], str),
    ("USAGE_INDICATOR", "edi", ["usage_indicator"], _usage_indicator),
    ("TIMELY_FILING_DAYS", "validation", ["timely_filing_days"], int),
]


class Settings:
    """Main settings class that combines all configuration sections."""

    SECTIONS = ("submitter", "billing_provider", "edi", "database", "output", "validation")

    def __init__(self, config_file: Optional[str] = None, env_prefix: str = "RCM_EDI_"):
        """Initialize settings from file and environment variables.

        Nothing is created on disk here; output and counter directories
        are made when a file is first written.

        Args:
            config_file: Path to JSON configuration file (ignored if absent)
            env_prefix: Prefix for environment variables

        Raises:
            ValueError: If the config file is not a JSON object of sections,
                or an environment override cannot be converted
        """
        self.submitter = SubmitterConfig()
        self.billing_provider = BillingProviderConfig()
        self.edi = EDIConfig()
        self.database = DatabaseConfig()
        self.output = OutputConfig()
        self.validation = ValidationConfig()

        if config_file and Path(config_file).exists():
            self._load_from_file(config_file)

        self._load_from_env(env_prefix)

    def _load_from_file(self, config_file: str):
        with open(config_file, 'r') as f:
            config = json.load(f)

        if not isinstance(config, dict):
            raise ValueError(f"Configuration file {config_file} must contain a JSON object")

        for section_name, section_config in config.items():
            if section_name not in self.SECTIONS or not isinstance(section_config, dict):
                logger.warning(f"Ignoring unknown configuration section: {section_name}")
                continue

            section = getattr(self, section_name)
            known = {f.name for f in fields(section)}
            for key, value in section_config.items():
                if key in known:
                    setattr(section, key, value)
                else:
                    logger.warning(f"Ignoring unknown setting {section_name}.{key}")

        logger.info(f"Loaded configuration from {config_file}")

    def _load_from_env(self, env_prefix: str):
        for suffix, section_name, attributes, convert in _ENV_OVERRIDES:
            raw = os.getenv(f"{env_prefix}{suffix}")
            if not raw:
                continue

            try:
                value = convert(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {env_prefix}{suffix}: {raw!r}") from e

            section = getattr(self, section_name)
            for attribute in attributes:
                setattr(section, attribute, value)

    def to_dict(self) -> dict:
        """Convert settings to dictionary for serialization."""
        return {name: asdict(getattr(self, name)) for name in self.SECTIONS}

    def save_to_file(self, file_path: str):
        """Save current settings to JSON file."""
        with open(file_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
