"""
Simple Configuration
Environment variables for the social inbox permission service
"""

import os
from typing import List
from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class SimpleSettings:
    """Simple settings without complex validation"""

    def __init__(self):
        # Application
        self.ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
        self.DEBUG = os.getenv("DEBUG", "false").lower() == "true"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        # Database
        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./social_inbox.db")
        self.DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
        self.DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
        self.DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
        self.DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "3600"))

        # Tokens are minted by the main CRM; this service only verifies them
        self.JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-shared-crm-secret-min-32-characters-long")
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.AUTH_TRUSTED_ISSUERS = _split_csv(os.getenv("AUTH_TRUSTED_ISSUERS", "main-crm"))

        # Roles allowed to manage permission records
        self.ADMIN_ROLES = _split_csv(os.getenv("ADMIN_ROLES", "General Manager,Super Admin"))

        # Upper bound for a single permission store fetch
        self.PERMISSION_STORE_TIMEOUT_SECONDS = float(os.getenv("PERMISSION_STORE_TIMEOUT_SECONDS", "5"))

        # Security
        self.ALLOWED_HOSTS = ["*"]
        self.CORS_ORIGINS = _split_csv(os.getenv("CORS_ORIGINS", "http://localhost:5173"))


# Create settings instance
settings = SimpleSettings()

# Derived settings
DATABASE_CONFIG = {
    "pool_pre_ping": True,
    "echo": settings.ENVIRONMENT == "development" and settings.DEBUG,
}

if settings.DATABASE_URL.startswith("postgresql"):
    DATABASE_CONFIG.update({
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    })
