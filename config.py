"""Configuration constants and runtime profiles for the app."""
import os


def _normalized_database_url() -> str:
    url = os.environ.get('DATABASE_URL', 'sqlite:///fridaygt.db')
    if url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    return url


class BaseConfig:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-key-change-in-production')
    SQLALCHEMY_DATABASE_URI = _normalized_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True}
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # JSON bodies only
    STRUCTURED_LOGGING = os.environ.get('STRUCTURED_LOGGING', '1') == '1'
    SENTRY_DSN = os.environ.get('SENTRY_DSN', '').strip()
    RATE_LIMIT_ENABLED = os.environ.get('RATE_LIMIT_ENABLED', '1') == '1'
    RATE_LIMIT_WINDOW_SECONDS = int(os.environ.get('RATE_LIMIT_WINDOW_SECONDS', '60'))
    RATE_LIMIT_MUTATION = int(os.environ.get('RATE_LIMIT_MUTATION', '20'))
    RATE_LIMIT_AUTH = int(os.environ.get('RATE_LIMIT_AUTH', '5'))
    RESEND_API_KEY = os.environ.get('RESEND_API_KEY', '').strip()
    EMAIL_FROM = os.environ.get('EMAIL_FROM', 'FridayGT <noreply@fridaygt.com>')
    APP_BASE_URL = os.environ.get('APP_BASE_URL', 'http://localhost:5000').rstrip('/')
    WTF_CSRF_TIME_LIMIT = None


class DevelopmentConfig(BaseConfig):
    ENV_NAME = 'development'


class ProductionConfig(BaseConfig):
    ENV_NAME = 'production'
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True


class TestingConfig(BaseConfig):
    ENV_NAME = 'testing'
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    WTF_CSRF_ENABLED = False
    STRUCTURED_LOGGING = False
    SENTRY_DSN = ''
    RATE_LIMIT_ENABLED = False
    RESEND_API_KEY = ''


def get_config():
    env = os.environ.get('FLASK_ENV', '').strip().lower()
    if env == 'production' or os.environ.get('PRODUCTION', '').strip() == '1':
        return ProductionConfig
    if env == 'testing':
        return TestingConfig
    return DevelopmentConfig


def validate_runtime(app_config: dict) -> None:
    """Fail fast for production misconfiguration."""
    env_name = app_config.get('ENV_NAME', 'development')
    if env_name != 'production':
        return

    secret = app_config.get('SECRET_KEY') or ''
    weak_values = {'dev-key-change-in-production', 'changeme', 'secret', 'default'}
    if len(secret) < 16 or secret.lower() in weak_values:
        raise RuntimeError('Invalid SECRET_KEY for production. Set a strong random secret.')
    if app_config.get('SQLALCHEMY_DATABASE_URI', '').startswith('sqlite'):
        raise RuntimeError('Production requires DATABASE_URL to point at PostgreSQL (row locks are needed for reorders).')


# User roles
ROLE_PENDING = 'PENDING'
ROLE_USER = 'USER'
ROLE_ADMIN = 'ADMIN'
APPROVED_ROLES = {ROLE_USER, ROLE_ADMIN}

# Tyres offered on race rosters
TYRE_CATEGORY_NAME = 'Tyres'
DEFAULT_TYRE_NAME = 'Racing: Soft'
TYRE_PART_NAMES = [
    'Comfort: Hard', 'Comfort: Medium', 'Comfort: Soft',
    'Sports: Hard', 'Sports: Medium', 'Sports: Soft',
    'Racing: Hard', 'Racing: Medium', 'Racing: Soft',
    'Dirt', 'Snow Tyres', 'Intermediate', 'Racing: Heavy Wet',
]

VALID_WEATHER = ['dry', 'wet', 'dynamic']

# Drag-and-drop save debounce used by the optimistic list controller
REORDER_DEBOUNCE_SECONDS = 0.5

REJECTION_REASON_MAX_LENGTH = 500
MIN_PASSWORD_LENGTH = 8
GAMERTAG_MAX_LENGTH = 50
AUDIT_LOG_PAGE_SIZE = 50

# Lap times, in milliseconds
LAP_TIME_MIN_MS = 10_000
LAP_TIME_MAX_MS = 1_800_000
LAP_SESSION_TYPES = ('Q', 'R')
LEADERBOARD_RECENT_LAPS = 5

BUILD_NAME_MAX_LENGTH = 100
BUILD_DESCRIPTION_MAX_LENGTH = 500
BUILD_MAX_GEARS = 20

NOTE_TITLE_MAX_LENGTH = 200
NOTE_CONTENT_MAX_LENGTH = 5000
NOTE_DEFAULT_COLOR = '#fef08a'
