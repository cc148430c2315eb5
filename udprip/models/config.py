"""Router configuration model."""

import ipaddress
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, field_validator


DEFAULT_PORT = 55151
MAX_METRIC = 255
STALE_MULTIPLIER = 4


class RouterConfig(BaseModel):
    """
    Process-level router configuration.

    Built once at startup from the command line and handed to the
    node runtime. Every value is validated here so the rest of the
    router can trust it.
    """
    address: str = Field(..., description="Local IP address (routing identity and bind address)")
    period: float = Field(..., gt=0, description="Advertisement period in seconds")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="UDP port shared by all routers")
    max_metric: int = Field(default=MAX_METRIC, ge=1, description="Distances above this are unreachable")
    stale_multiplier: int = Field(
        default=STALE_MULTIPLIER,
        ge=1,
        description="Neighbors silent for this many periods are considered failed"
    )
    startup_file: Optional[Path] = Field(None, description="Optional file of add/del commands")

    @field_validator("address")
    @classmethod
    def _normalize_address(cls, value: str) -> str:
        try:
            return str(ipaddress.ip_address(value.strip()))
        except ValueError:
            raise ValueError(f"{value!r} is not a valid IP address")
