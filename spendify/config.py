import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()

class Config:
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///spendify.db")

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
    JWT_TOKEN_LOCATION = ["headers"]

    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:3000")

    # access token lifetime in seconds, refresh token lifetime in days
    ACCESS_EXPIRES = int(os.getenv("ACCESS_EXPIRES", 3600))
    REFRESH_EXPIRES_DAYS = int(os.getenv("REFRESH_EXPIRES_DAYS", 7))

    BCRYPT_LOG_ROUNDS = int(os.getenv("BCRYPT_LOG_ROUNDS", 12))

    # Fernet key (urlsafe base64, 32 bytes) for card numbers at rest
    CARD_ENCRYPTION_KEY = os.getenv("CARD_ENCRYPTION_KEY")

    MAX_LOGIN_ATTEMPTS = 5
    LOCK_DURATION = timedelta(minutes=15)

    CSRF_ENABLED = True
    CSRF_COOKIE_NAME = "XSRF-TOKEN"
    CSRF_COOKIE_SECURE = False

    RATELIMIT_ENABLED = True
    RATELIMIT_STRATEGY = "moving-window"
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per 15 minutes")
    RATELIMIT_HEADERS_ENABLED = True
    LOGIN_RATE_LIMIT = "5 per 15 minutes"
    REGISTER_RATE_LIMIT = "3 per hour"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class DevelopmentConfig(Config):
    DEBUG = True


class ProductionConfig(Config):
    DEBUG = False
    CSRF_COOKIE_SECURE = True


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "testing-secret-key-with-enough-length-for-hs256"
    BCRYPT_LOG_ROUNDS = 4
    RATELIMIT_ENABLED = False
    LOG_LEVEL = "WARNING"


CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
