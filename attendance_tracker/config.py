"""Application configuration using Pydantic Settings."""
from datetime import date

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # App
    app_name: str = "Classroom Attendance Tracker"
    debug: bool = False

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "attendance_tracker"

    # JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    jwt_refresh_token_expire_days: int = 30

    # AWS S3 (temporary verification photos)
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "ap-south-1"
    s3_bucket_temp_photos: str = "attendance-temp-photos"

    # Firebase (FCM)
    firebase_credentials_path: str = ""

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:5173"

    # Attendance rules
    academic_start_date: str = "2025-09-16"  # YYYY-MM-DD, start of the academic window
    timezone: str = "Asia/Kolkata"
    qr_validity_seconds: int = 30
    temp_photo_grace_seconds: int = 10
    low_attendance_threshold: int = 75
    # Group events without a session id under date + subject (merges same-day sessions)
    merge_unlabeled_sessions: bool = False

    @field_validator("academic_start_date")
    @classmethod
    def _validate_academic_start_date(cls, value: str) -> str:
        value = value.strip()
        try:
            parsed = date.fromisoformat(value)
        except ValueError:
            raise ValueError("ACADEMIC_START_DATE must be a date in YYYY-MM-DD format")
        # Window filtering compares strings, so the stored form must be zero-padded
        if parsed.isoformat() != value:
            raise ValueError("ACADEMIC_START_DATE must be zero-padded (YYYY-MM-DD)")
        return value

    @model_validator(mode="after")
    def _validate_production_secrets(self):
        if not self.debug:
            if self.jwt_secret_key in ("change-me-in-production", ""):
                raise ValueError(
                    "JWT_SECRET_KEY must be set to a strong secret when DEBUG is not enabled. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
                )
        return self


settings = Settings()
