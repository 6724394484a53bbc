"""
Configuration management for the back-office API
Supports multiple environments with secure defaults
"""

import os
import re
from datetime import timedelta
from dotenv import load_dotenv

# Load environment variables
basedir = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(basedir, '.env'))


def parse_expires_in(value, default_seconds=86400):
    """Parse an expiry such as '1d', '12h', '30m', '45s' or plain seconds."""
    if not value:
        return timedelta(seconds=default_seconds)

    match = re.fullmatch(r'\s*(\d+)\s*([dhms]?)\s*', str(value).lower())
    if not match:
        raise ValueError(f"Invalid expiry value: {value!r}")

    amount, unit = int(match.group(1)), match.group(2) or 's'
    multipliers = {'d': 86400, 'h': 3600, 'm': 60, 's': 1}
    return timedelta(seconds=amount * multipliers[unit])


def engine_options(database_uri):
    """Connection pool options; SQLite does not take pool sizing arguments."""
    if database_uri.startswith('sqlite'):
        return {}
    return {
        'pool_size': int(os.environ.get('DATABASE_POOL_SIZE', 20)),
        'pool_timeout': 20,
        'pool_recycle': 3600,
        'max_overflow': int(os.environ.get('DATABASE_MAX_OVERFLOW', 10))
    }


class Config:
    """Base configuration class with common settings."""

    # Flask Core Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    FLASK_ENV = os.environ.get('FLASK_ENV') or 'production'
    PORT = int(os.environ.get('PORT', 3015))
    API_URL = os.environ.get('API_URL') or f'http://localhost:{PORT}'

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or \
        f'sqlite:///{os.path.join(basedir, "backoffice.db")}'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = engine_options(SQLALCHEMY_DATABASE_URI)

    # JWT Configuration
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or os.environ.get('JWT_SECRET') or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = parse_expires_in(os.environ.get('JWT_EXPIRES_IN', '1d'))
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)

    # File Upload Configuration
    MAX_CONTENT_LENGTH = int(os.environ.get('MAX_CONTENT_LENGTH', 25 * 1024 * 1024))
    MAX_FILE_SIZE = int(os.environ.get('MAX_FILE_SIZE', 10 * 1024 * 1024))  # 10MB per file
    INVOICE_IMAGE_MIME_TYPES = {
        'image/jpeg', 'image/png', 'image/gif',
        'application/pdf', 'application/xml', 'text/xml'
    }

    # Image analysis Configuration
    OCR_CONFIDENCE_THRESHOLD = float(os.environ.get('OCR_CONFIDENCE_THRESHOLD', 0.5))
    OCR_LANGUAGES = os.environ.get('OCR_LANGUAGES', 'es,en').split(',')
    IMAGE_DOWNLOAD_TIMEOUT = float(os.environ.get('IMAGE_DOWNLOAD_TIMEOUT', 15))

    # Rate Limiting Configuration
    RATELIMIT_ENABLED = os.environ.get('RATELIMIT_ENABLED', 'True').lower() == 'true'
    RATELIMIT_STORAGE_URI = os.environ.get('RATE_LIMIT_STORAGE_URI') or 'memory://'
    RATELIMIT_DEFAULT = os.environ.get('DEFAULT_RATE_LIMIT', '1000 per hour')

    # CORS Configuration
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

    # Security Configuration
    SECURE_SSL_REDIRECT = os.environ.get('SECURE_SSL_REDIRECT', 'False').lower() == 'true'

    # Account lockout
    MAX_FAILED_LOGINS = int(os.environ.get('MAX_FAILED_LOGINS', 5))
    ACCOUNT_LOCK_MINUTES = int(os.environ.get('ACCOUNT_LOCK_MINUTES', 60))

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'json')
    SENTRY_DSN = os.environ.get('SENTRY_DSN')


class DevelopmentConfig(Config):
    """Development environment configuration."""
    DEBUG = True
    FLASK_ENV = 'development'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        f'sqlite:///{os.path.join(basedir, "dev_backoffice.db")}'
    SQLALCHEMY_ENGINE_OPTIONS = engine_options(SQLALCHEMY_DATABASE_URI)
    LOG_FORMAT = 'console'


class TestingConfig(Config):
    """Testing environment configuration."""
    TESTING = True
    FLASK_ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET_KEY = 'testing-secret-key-with-enough-length-for-hs256'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(seconds=300)  # 5 minutes for tests
    RATELIMIT_ENABLED = False
    SENTRY_DSN = None
    LOG_FORMAT = 'console'


class ProductionConfig(Config):
    """Production environment configuration."""
    DEBUG = False
    TESTING = False
    FLASK_ENV = 'production'


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
