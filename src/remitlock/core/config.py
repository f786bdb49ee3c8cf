"""
Configuration management for RemitLock.

Handles loading configuration from environment variables and validation.
Settings may also come from a ``.env`` file, loaded with python-dotenv.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

# One day
DEFAULT_MAX_LOCK_WINDOW = 24 * 60 * 60


def _get_env_var(name: str, default: str | None = None, required: bool = False) -> str | None:
    """Get environment variable with optional default."""
    value = os.environ.get(name, default)
    if required and not value:
        raise ValueError(f"Required environment variable {name} is not set")
    return value


@dataclass(frozen=True)
class Config:
    """RemitLock configuration."""

    fixed_fee: int = 0
    max_lock_window: int = DEFAULT_MAX_LOCK_WINDOW  # seconds
    owner: str | None = None  # defaults to the deploying caller
    contract_identity: str | None = None  # random address if unset

    storage_backend: str = "memory"
    redis_url: str | None = None
    log_level: str = "INFO"

    # Settlement mutex
    lock_ttl: int = 60  # must outlast request_timeout
    lock_retry_count: int = 3
    lock_retry_delay: float = 0.05

    # Custodian API for HttpValueTransfer
    transfer_api_url: str | None = None
    transfer_api_key: str | None = None
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.fixed_fee < 0:
            raise ValueError("fixed_fee must be non-negative")
        if self.max_lock_window <= 0:
            raise ValueError("max_lock_window must be positive")
        if self.lock_ttl <= 0:
            raise ValueError("lock_ttl must be positive")
        if self.lock_retry_count < 0:
            raise ValueError("lock_retry_count must be non-negative")
        if self.lock_ttl <= self.request_timeout:
            raise ValueError("lock_ttl must exceed request_timeout")

    @classmethod
    def from_env(cls, env_file: str | Path | None = None, **overrides: Any) -> Config:
        """
        Load configuration from REMITLOCK_* environment variables.

        Args:
            env_file: Optional .env file loaded first; real environment variables win
            **overrides: Explicit values that win over the environment
        """
        if env_file is not None:
            load_dotenv(env_file, override=False)

        fixed_fee = overrides.get("fixed_fee")
        if fixed_fee is None:
            fixed_fee = int(_get_env_var("REMITLOCK_FIXED_FEE", default="0"))  # type: ignore

        max_lock_window = overrides.get("max_lock_window")
        if max_lock_window is None:
            max_lock_window = int(
                _get_env_var("REMITLOCK_MAX_LOCK_WINDOW", default=str(DEFAULT_MAX_LOCK_WINDOW))  # type: ignore
            )

        owner = overrides.get("owner") or _get_env_var("REMITLOCK_OWNER")
        contract_identity = overrides.get("contract_identity") or _get_env_var(
            "REMITLOCK_CONTRACT_IDENTITY"
        )

        storage_backend = overrides.get("storage_backend") or _get_env_var(
            "REMITLOCK_STORAGE_BACKEND", default="memory"
        )
        redis_url = overrides.get("redis_url") or _get_env_var("REMITLOCK_REDIS_URL")
        log_level = overrides.get("log_level") or _get_env_var(
            "REMITLOCK_LOG_LEVEL", default="INFO"
        )
        transfer_api_url = overrides.get("transfer_api_url") or _get_env_var(
            "REMITLOCK_TRANSFER_API_URL"
        )
        transfer_api_key = overrides.get("transfer_api_key") or _get_env_var(
            "REMITLOCK_TRANSFER_API_KEY"
        )

        return cls(
            fixed_fee=fixed_fee,
            max_lock_window=max_lock_window,
            owner=owner,
            contract_identity=contract_identity,
            storage_backend=storage_backend,  # type: ignore
            redis_url=redis_url,
            log_level=log_level,  # type: ignore
            lock_ttl=overrides.get("lock_ttl", cls.lock_ttl),
            lock_retry_count=overrides.get("lock_retry_count", cls.lock_retry_count),
            lock_retry_delay=overrides.get("lock_retry_delay", cls.lock_retry_delay),
            transfer_api_url=transfer_api_url,
            transfer_api_key=transfer_api_key,
            request_timeout=overrides.get("request_timeout", cls.request_timeout),
        )

    def with_updates(self, **updates: Any) -> Config:
        """Create a new Config with updated values."""
        known = {f.name for f in fields(self)}
        unknown = set(updates) - known
        if unknown:
            raise ValueError(f"Unknown config fields: {', '.join(sorted(unknown))}")
        return replace(self, **updates)
