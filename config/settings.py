"""Configuration settings loaded from environment variables."""

from __future__ import annotations

import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Data store (PostgREST / Supabase)
    supabase_url: str | None = Field(
        default=None,
        description="Base URL of the Supabase project",
    )
    supabase_anon_key: str | None = Field(
        default=None,
        description="Anon key sent as apikey and bearer token",
    )
    branches_table: str = Field(
        default="decision_branches",
        description="Table holding decision branches",
    )
    decision_logs_table: str = Field(
        default="decision_logs",
        description="Table receiving decision log entries",
    )
    actions_table: str = Field(
        default="workflow_actions",
        description="Table holding branch actions",
    )

    # Performance Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    request_timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Store request timeout in seconds",
    )

    model_config = {"extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance loaded from environment."""
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY"),
        branches_table=os.getenv("BRANCHES_TABLE", "decision_branches"),
        decision_logs_table=os.getenv("DECISION_LOGS_TABLE", "decision_logs"),
        actions_table=os.getenv("ACTIONS_TABLE", "workflow_actions"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        request_timeout=float(os.getenv("REQUEST_TIMEOUT", "30")),
    )
