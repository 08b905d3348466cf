"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Optional
import logging

import yaml
from pydantic import BaseModel, Field

from .utils.exceptions import InvalidConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class ReconciliationConfig(BaseModel):
    """
    Per-company matching parameters.

    Weights are points out of 100 and must add up to exactly 100. The amount
    tolerance is expressed in percent (1.0 means a 1% relative deviation).
    """

    exact_match_confidence: int = 100
    date_amount_match_confidence: int = 95
    min_confidence_threshold: int = 70
    amount_weight: int = 50
    date_weight: int = 30
    description_weight: int = 20
    amount_tolerance_percent: float = 1.0
    date_tolerance: int = 3
    auto_reconcile_above_threshold: int = 90
    distant_date_floor_ratio: float = Field(default=1 / 6)
    # Applies to text scoring only; the exact reference pass is always case-sensitive
    case_sensitive_references: bool = False

    @property
    def amount_tolerance_fraction(self) -> float:
        """Amount tolerance as a fraction (0.01 for 1%)."""
        return self.amount_tolerance_percent / 100

    @property
    def total_weight(self) -> int:
        return self.amount_weight + self.date_weight + self.description_weight


_NON_NEGATIVE_FIELDS = (
    "exact_match_confidence",
    "date_amount_match_confidence",
    "min_confidence_threshold",
    "amount_weight",
    "date_weight",
    "description_weight",
    "amount_tolerance_percent",
    "date_tolerance",
    "auto_reconcile_above_threshold",
    "distant_date_floor_ratio",
)


def validate_config(config: ReconciliationConfig) -> None:
    """
    Check a reconciliation config for consistency.

    Args:
        config: Parameters to check

    Raises:
        InvalidConfig: If the weights do not sum to 100 or any tolerance or
            threshold is negative
    """
    problems: list[str] = []

    if config.total_weight != 100:
        problems.append(
            f"amount_weight + date_weight + description_weight must be 100, "
            f"got {config.total_weight}"
        )

    for name in _NON_NEGATIVE_FIELDS:
        value = getattr(config, name)
        if value < 0:
            problems.append(f"{name} must not be negative, got {value}")

    if problems:
        raise InvalidConfig(problems)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = LOG_FORMAT
    file: Optional[str] = None


class AppConfig(BaseModel):
    """Main application configuration."""

    reconciliation: ReconciliationConfig = Field(default_factory=ReconciliationConfig)
    companies: dict[str, dict[str, Any]] = Field(default_factory=dict)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None

    def for_company(self, company_id: str) -> ReconciliationConfig:
        """
        Build the reconciliation parameters for a company.

        Company overrides are merged on top of the shared defaults.
        """
        overrides = self.companies.get(company_id)
        if not overrides:
            return self.reconciliation.model_copy()
        merged = _deep_merge(self.reconciliation.model_dump(), overrides)
        return ReconciliationConfig(**merged)

    def company_configs(self) -> dict[str, ReconciliationConfig]:
        return {company_id: self.for_company(company_id) for company_id in self.companies}


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "reconciliation": {
            "exact_match_confidence": 100,
            "date_amount_match_confidence": 95,
            "min_confidence_threshold": 70,
            "amount_weight": 50,
            "date_weight": 30,
            "description_weight": 20,
            "amount_tolerance_percent": 1.0,
            "date_tolerance": 3,
            "auto_reconcile_above_threshold": 90,
            "distant_date_floor_ratio": round(1 / 6, 6),
            "case_sensitive_references": False,
        },
        "companies": {},
        "logging": {
            "level": "INFO",
            "format": LOG_FORMAT,
            "file": None,
        },
    }


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        AppConfig object with loaded or default settings
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        with open(config_path, "r") as f:
            user_config = yaml.safe_load(f) or {}

        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    return AppConfig(**config_dict)


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()
    config_dict["companies"] = {
        "example-company": {"date_tolerance": 5, "auto_reconcile_above_threshold": 95}
    }

    yaml_content = """# Bank / ledger reconciliation configuration
# Weights must add up to 100. amount_tolerance_percent is in percent (1.0 = 1%).
# Entries under "companies" override the defaults for that company id.

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
