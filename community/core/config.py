# Defines application-wide settings using pydantic-settings' BaseSettings
# Manages environment variables for various aspects of the application:
# API configuration (version, project name)
# Security settings (secret keys, JWT algorithm, admin access code)
# Database connection details
# Object storage (Cloudflare R2) configuration
# Anonymous visitor identity


import os
import json
from typing import List, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Community Board API"
    VERSION: str = "0.1.0"

    # Server URLs
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", "development_secret_key")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7  # 7 days
    ALGORITHM: str = "HS256"

    # Shared code that grants the admin role to a signed-in user
    ADMIN_ACCESS_CODE: str = os.getenv("ADMIN_ACCESS_CODE", "")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./community.db")

    # CORS
    BACKEND_CORS_ORIGINS: Union[List[str], str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ]

    # File uploads
    UPLOAD_DIRECTORY: str = os.getenv("UPLOAD_DIRECTORY", "uploads")
    MAX_UPLOAD_SIZE: int = 20 * 1024 * 1024  # 20 MB

    # Cloudflare R2 Storage
    R2_ENDPOINT: str = os.getenv("R2_ENDPOINT", "")
    R2_ACCESS_KEY_ID: str = os.getenv("R2_ACCESS_KEY_ID", "")
    R2_SECRET_ACCESS_KEY: str = os.getenv("R2_SECRET_ACCESS_KEY", "")
    R2_BUCKET_NAME: str = os.getenv("R2_BUCKET_NAME", "post-media")
    R2_PUBLIC_URL: str = os.getenv("R2_PUBLIC_URL", "")

    # Anonymous visitors keep their like identity in this cookie
    ANONYMOUS_SESSION_COOKIE: str = "anonymous_session_id"
    ANONYMOUS_SESSION_MAX_AGE: int = 60 * 60 * 24 * 365 * 5

    # Development settings - set these differently in production
    DEBUG: bool = os.getenv("DEBUG", "False").lower() in ["true", "1", "t"]
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            # Handle JSON string format
            try:
                return json.loads(v)
            except ValueError:
                return []
        return v

# Create settings instance
settings = Settings()
