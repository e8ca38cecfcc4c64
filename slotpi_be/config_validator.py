"""
Configuration validation and startup checks.

Critical environment variables are checked before the application starts so a
production deployment never runs on development fallbacks.
"""

import os
import sys
import warnings
from typing import List, Optional


class ConfigValidationError(Exception):
    """Raised when critical configuration is missing or invalid."""
    pass


class ConfigValidator:
    """Validates application configuration and enforces production settings."""

    def __init__(self, is_production: bool = None):
        """
        Initialize the configuration validator.

        Args:
            is_production: If None, detected from FLASK_ENV
        """
        if is_production is None:
            is_production = os.getenv('FLASK_ENV', '').lower() == 'production'

        self.is_production = is_production
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_required_env_var(self, var_name: str, description: str = None) -> Optional[str]:
        value = os.getenv(var_name)
        if not value:
            desc = description or var_name
            if self.is_production:
                self.errors.append(f"CRITICAL: {desc} ({var_name}) must be set in production environment")
            else:
                self.warnings.append(f"WARNING: {desc} ({var_name}) not set - using development fallback")
        return value

    def validate_positive_int(self, var_name: str, default: int) -> int:
        raw = os.getenv(var_name)
        if raw is None or raw == '':
            return default
        try:
            value = int(raw)
        except ValueError:
            self.errors.append(f"CRITICAL: {var_name} must be an integer (got '{raw}')")
            return default
        if value <= 0:
            self.errors.append(f"CRITICAL: {var_name} must be a positive integer (got {value})")
            return default
        return value

    def validate_database_config(self) -> str:
        """Validate database configuration."""
        database_url = self.validate_required_env_var('DATABASE_URL', 'Database URL')

        if database_url:
            if not database_url.startswith(('postgresql://', 'postgresql+psycopg2://', 'sqlite://')):
                self.errors.append("CRITICAL: DATABASE_URL must use a supported database driver")
            return database_url

        return 'sqlite:///slotpi_dev.db'

    def validate_pi_platform_config(self) -> dict:
        """Validate the Pi platform API settings used for deposit verification."""
        api_key = self.validate_required_env_var('PI_SERVER_API_KEY', 'Pi server API key')
        if api_key and len(api_key) < 10:
            self.errors.append("CRITICAL: PI_SERVER_API_KEY must be at least 10 characters long")

        api_base = os.getenv('PI_API_BASE', 'https://api.minepi.com/v2').rstrip('/')
        if not api_base.startswith(('http://', 'https://')):
            self.errors.append("CRITICAL: PI_API_BASE must be an http(s) URL")

        return {
            'PI_SERVER_API_KEY': api_key or 'dev-pi-server-api-key',
            'PI_API_BASE': api_base,
            'PI_API_TIMEOUT_SECONDS': self.validate_positive_int('PI_API_TIMEOUT_SECONDS', 10),
        }

    def validate_game_config(self) -> dict:
        return {
            'MAX_BET_CREDITS': self.validate_positive_int('MAX_BET_CREDITS', 10_000),
            'CREDITS_PER_PI': self.validate_positive_int('CREDITS_PER_PI', 100),
            'LEDGER_HISTORY_MAX_LIMIT': self.validate_positive_int('LEDGER_HISTORY_MAX_LIMIT', 200),
        }

    def validate_all(self) -> dict:
        """
        Validate all configuration settings.

        Returns:
            Dictionary containing validated configuration values

        Raises:
            ConfigValidationError: If critical configuration is missing or invalid
        """
        config = {}

        try:
            config['SQLALCHEMY_DATABASE_URI'] = self.validate_database_config()
            config.update(self.validate_pi_platform_config())
            config.update(self.validate_game_config())
            config['DEBUG'] = os.getenv('FLASK_DEBUG', 'False').lower() in ('true', '1', 't')

            if self.is_production and config['DEBUG']:
                self.errors.append("CRITICAL: DEBUG mode must be disabled in production (set FLASK_DEBUG=False)")

            if self.errors:
                error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in self.errors)
                if self.warnings:
                    error_msg += "\n\nWarnings:\n" + "\n".join(f"  - {warning}" for warning in self.warnings)
                raise ConfigValidationError(error_msg)

            for warning in self.warnings:
                warnings.warn(warning, UserWarning)

            return config

        except Exception as e:
            if isinstance(e, ConfigValidationError):
                raise
            raise ConfigValidationError(f"Configuration validation error: {str(e)}") from e


def validate_production_config() -> dict:
    """
    Validate configuration with fail-fast behavior.

    Returns:
        Dictionary of validated configuration values

    Raises:
        SystemExit: If validation fails
    """
    try:
        validator = ConfigValidator()
        return validator.validate_all()
    except ConfigValidationError as e:
        print("\nCONFIGURATION VALIDATION FAILED\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nApplication startup ABORTED\n", file=sys.stderr)
        sys.exit(1)
