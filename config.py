"""
Configuration settings for the campus incident reporting API.
Supports both development and production environments via environment variables.
"""
import os

# Load environment variables from .env file if it exists
from dotenv import load_dotenv

load_dotenv()

# ============================================================================
# Database Configuration
# ============================================================================
_raw_url = os.getenv(
    "DATABASE_URL",
    "sqlite:///./campus_incidents.db"
)
# SQLAlchemy 2 loads dialect "postgresql", not "postgres"; normalize Heroku-style URLs
if _raw_url.startswith("postgres://"):
    DATABASE_URL = "postgresql://" + _raw_url[len("postgres://"):]
else:
    DATABASE_URL = _raw_url
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))

# ============================================================================
# Security Configuration
# ============================================================================
SECRET_KEY = os.getenv("SECRET_KEY", "change-this-secret-key-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))  # 24 hours

# Admin accounts are normally created with scripts/create_admin.py
ALLOW_ADMIN_SELF_REGISTRATION = os.getenv("ALLOW_ADMIN_SELF_REGISTRATION", "false").lower() == "true"

# CORS Settings - include your frontend origin (e.g. Next 3000, Vite 5173)
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173").split(",") if o.strip()]
CORS_ALLOW_CREDENTIALS = True

# Trusted Hosts
TRUSTED_HOSTS = os.getenv("TRUSTED_HOSTS", "localhost,127.0.0.1").split(",")

# Rate Limiting
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
RATE_LIMIT_PER_HOUR = int(os.getenv("RATE_LIMIT_PER_HOUR", "1000"))

# ============================================================================
# Reports & Notifications
# ============================================================================
RECENT_REPORTS_LIMIT = int(os.getenv("RECENT_REPORTS_LIMIT", "3"))  # Dashboard "recent reports" prefix
NOTIFICATION_BACKLOG = int(os.getenv("NOTIFICATION_BACKLOG", "50"))  # Pending notifications kept per user

# ============================================================================
# Application Settings
# ============================================================================
APP_NAME = os.getenv("APP_NAME", "Campus Incident Reporting API")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")  # development, staging, production
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_FILE = os.getenv("LOG_FILE")  # defaults to logs/app.log
