"""Pydantic models for database configuration."""

from pydantic import BaseModel, Field, model_validator


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    max_open: int = Field(default=10, ge=1)
    max_idle: int = Field(default=5, ge=0)

    @model_validator(mode="after")
    def _idle_within_open(self) -> "DatabaseProfile":
        if self.max_idle > self.max_open:
            raise ValueError(f"max_idle ({self.max_idle}) cannot exceed max_open ({self.max_open})")
        return self


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    validate_on_connect: bool = True
