"""
Runtime configuration for the approval engine.

Values are read from the environment once (``PortalSettings.from_env``)
and shared through ``get_settings``. Tests build their own instances.
"""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator


class PortalSettings(BaseModel):
    """Environment-driven settings; immutable after startup."""

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    DATABASE_URL: str = Field(
        "sqlite:///./portal.db",
        description="SQLAlchemy URL of the relational store",
    )

    UPLOAD_DIR: str = Field(
        "uploads",
        description="Directory where uploaded PDFs are mirrored on disk",
    )

    MAX_FILE_SIZE_MB: int = Field(
        10,
        description="Maximum accepted upload size in megabytes",
    )

    # ------------------------------------------------------------------
    # Signature stamping
    # ------------------------------------------------------------------

    SIGNATURE_WIDTH: float = Field(150.0, description="Default stamp width in points")
    SIGNATURE_HEIGHT: float = Field(56.0, description="Default stamp height in points")
    SIGNATURE_OPACITY: float = Field(
        0.95,
        description="Opacity of the stamped image; below 1 keeps print guidelines visible",
    )

    SIGNATURE_ENCRYPTION_KEY: str | None = Field(
        None,
        description="Fernet key used to encrypt signature images at rest",
    )

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    MAX_ACTION_ATTEMPTS: int = Field(
        3,
        description="How many times a reviewer action is re-run after a version conflict",
    )

    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    @field_validator("SIGNATURE_OPACITY")
    @classmethod
    def validate_opacity(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError(f"SIGNATURE_OPACITY must be in (0, 1], got {v}")
        return v

    @field_validator("SIGNATURE_WIDTH", "SIGNATURE_HEIGHT", "MAX_FILE_SIZE_MB")
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("Sizes must be positive")
        return v

    @field_validator("MAX_ACTION_ATTEMPTS")
    @classmethod
    def validate_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_ACTION_ATTEMPTS must be at least 1")
        return v

    @property
    def max_file_size(self) -> int:
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @classmethod
    def from_env(cls) -> "PortalSettings":
        """Load configuration from ``PORTAL_*`` environment variables."""
        return cls(
            DATABASE_URL=os.getenv("PORTAL_DATABASE_URL", "sqlite:///./portal.db"),
            UPLOAD_DIR=os.getenv("PORTAL_UPLOAD_DIR", "uploads"),
            MAX_FILE_SIZE_MB=int(os.getenv("PORTAL_MAX_FILE_SIZE_MB", "10")),
            SIGNATURE_WIDTH=float(os.getenv("PORTAL_SIGNATURE_WIDTH", "150")),
            SIGNATURE_HEIGHT=float(os.getenv("PORTAL_SIGNATURE_HEIGHT", "56")),
            SIGNATURE_OPACITY=float(os.getenv("PORTAL_SIGNATURE_OPACITY", "0.95")),
            SIGNATURE_ENCRYPTION_KEY=os.getenv("PORTAL_SIGNATURE_ENCRYPTION_KEY") or None,
            MAX_ACTION_ATTEMPTS=int(os.getenv("PORTAL_MAX_ACTION_ATTEMPTS", "3")),
            LOG_LEVEL=os.getenv("PORTAL_LOG_LEVEL", "INFO"),
        )


@lru_cache(maxsize=1)
def get_settings() -> PortalSettings:
    return PortalSettings.from_env()
