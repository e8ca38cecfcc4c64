"""
Configuration module with fail-fast validation.

Values are read from the environment (and a local .env file) and validated
once at import time by ``config_validator``.
"""
from dotenv import load_dotenv

from slotpi_be.config_validator import validate_production_config

load_dotenv()


class Config:
    """Production-ready configuration with fail-fast validation."""

    _validated_config = validate_production_config()

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = _validated_config['SQLALCHEMY_DATABASE_URI']
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    DEBUG = _validated_config['DEBUG']

    # Game limits
    MAX_BET_CREDITS = _validated_config['MAX_BET_CREDITS']
    LEDGER_HISTORY_MAX_LIMIT = _validated_config['LEDGER_HISTORY_MAX_LIMIT']

    # Pi platform (deposit verification)
    CREDITS_PER_PI = _validated_config['CREDITS_PER_PI']
    PI_API_BASE = _validated_config['PI_API_BASE']
    PI_SERVER_API_KEY = _validated_config['PI_SERVER_API_KEY']
    PI_API_TIMEOUT_SECONDS = _validated_config['PI_API_TIMEOUT_SECONDS']


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///./test_slotpi_be_isolated.db' # File-based so worker threads share one database
    DATABASE_FILE_PATH = SQLALCHEMY_DATABASE_URI.replace('sqlite:///', '')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
    MAX_BET_CREDITS = 10_000
    CREDITS_PER_PI = 100
    LEDGER_HISTORY_MAX_LIMIT = 200
    PI_API_BASE = 'https://pi.test/v2'
    PI_SERVER_API_KEY = 'test-pi-server-api-key'
    PI_API_TIMEOUT_SECONDS = 5
