"""Configuration management for circulation.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Fines
    daily_fine_rate: Decimal
    fine_cap_multiplier: Decimal

    # Loans
    renewal_days: int
    loan_business_days: int
    max_active_loans: int
    max_loans_with_pending_fines: int

    # Logging
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "CIRCULATION_DB_PATH",
            str(Path.home() / ".circulation" / "library.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            daily_fine_rate=Decimal(os.environ.get("CIRCULATION_DAILY_FINE_RATE", "1.00")),
            fine_cap_multiplier=Decimal(
                os.environ.get("CIRCULATION_FINE_CAP_MULTIPLIER", "2.0")
            ),
            renewal_days=int(os.environ.get("CIRCULATION_RENEWAL_DAYS", "7")),
            loan_business_days=int(os.environ.get("CIRCULATION_LOAN_BUSINESS_DAYS", "7")),
            max_active_loans=int(os.environ.get("CIRCULATION_MAX_ACTIVE_LOANS", "3")),
            max_loans_with_pending_fines=int(
                os.environ.get("CIRCULATION_MAX_LOANS_WITH_PENDING_FINES", "1")
            ),
            log_level=os.environ.get("CIRCULATION_LOG_LEVEL", "WARNING"),
        )

    @classmethod
    def defaults(cls, db_path: str = ":memory:") -> "Config":
        """Build a configuration with the library's standard policy values."""
        return cls(
            db_path=Path(db_path),
            daily_fine_rate=Decimal("1.00"),
            fine_cap_multiplier=Decimal("2.0"),
            renewal_days=7,
            loan_business_days=7,
            max_active_loans=3,
            max_loans_with_pending_fines=1,
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.daily_fine_rate < 0:
            errors.append("daily_fine_rate must not be negative")
        if self.fine_cap_multiplier <= 0:
            errors.append("fine_cap_multiplier must be positive")
        if self.renewal_days <= 0:
            errors.append("renewal_days must be positive")
        if self.loan_business_days <= 0:
            errors.append("loan_business_days must be positive")
        if self.max_active_loans <= 0:
            errors.append("max_active_loans must be positive")
        if self.max_loans_with_pending_fines < 0:
            errors.append("max_loans_with_pending_fines must not be negative")

        # Check database directory is writable
        if str(self.db_path) != ":memory:" and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
