from __future__ import annotations

import os
from uuid import uuid4

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_instance_id() -> str:
    hostname = os.environ.get("HOSTNAME", os.environ.get("POD_NAME", "unknown"))
    return f"{hostname}-{uuid4().hex[:8]}"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="WARDEN_", env_file=".env", extra="ignore", populate_by_name=True
    )

    # Identity of this replica in leases and selector records
    instance_id: str = Field(default_factory=_default_instance_id)

    # Store
    store_backend: str = Field(default="redis", validation_alias="STORE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")
    key_prefix: str = "warden"

    # Lease leader election (seconds)
    leader_ttl: float = Field(default=10.0, validation_alias="LEADER_TTL")
    leader_wait: float = Field(default=1.0, validation_alias="LEADER_WAIT")

    # Active/standby role for the whole process
    ha_role_key: str = Field(default="haleaderselect", validation_alias="HA_ROLE_KEY")
    ha_ttl: float = Field(default=2.0, validation_alias="HA_TTL")
    ha_wait: float = Field(default=1.0, validation_alias="HA_WAIT")

    # Escalating limiter defaults
    limiter_points: int = Field(default=5, validation_alias="LIMITER_POINTS")
    limiter_window: float = Field(default=10.0, validation_alias="LIMITER_WINDOW")
    limiter_block: float = Field(default=10.0, validation_alias="LIMITER_BLOCK")

    # Preset limiters
    public_addr_block_time: float = Field(default=3600.0, validation_alias="PUBLIC_ADDR_BLOCK_TIME")
    reconfig_error_block_time: float = Field(
        default=600.0, validation_alias="RECONFIG_ERROR_BLOCK_TIME"
    )

    # HTTP rate limiting for anonymous endpoints
    enable_rate_limiting: bool = Field(default=True, validation_alias="ENABLE_RATE_LIMITING")
    rate_limit_requests: int = Field(default=100, validation_alias="RATE_LIMIT_REQUESTS")
    rate_limit_window: float = Field(default=60.0, validation_alias="RATE_LIMIT_WINDOW")
    rate_limit_block: float = Field(default=300.0, validation_alias="RATE_LIMIT_BLOCK")

    # Observability
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")
    log_level: str = "INFO"
    log_json: bool = Field(default=True, validation_alias="LOG_JSON")


settings = Settings()
