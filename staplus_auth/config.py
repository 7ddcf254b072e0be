"""
Policy toggles.

Settings are read from ``STAPLUS_*`` environment variables or a ``.env``
file; every toggle is independent of the others.

Example:
    STAPLUS_ENFORCE_OWNERSHIP=true
    STAPLUS_ENFORCE_LICENSING=true
    STAPLUS_ENFORCE_AGGREGATE_LICENSING=true
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PolicySettings(BaseSettings):
    """Enforcement switches consumed by the guard, binder and license policy."""

    model_config = SettingsConfigDict(
        env_prefix="STAPLUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    enforce_ownership: bool = Field(
        default=False,
        description="Require mutating requests to act on entities owned by the principal",
    )
    enforce_licensing: bool = Field(
        default=False,
        description="Protect normative Licenses and require Licenses on streams and groups",
    )
    enforce_aggregate_licensing: bool = Field(
        default=False,
        description="Check license compatibility when Observations join a licensed Group",
    )
    admin_bypasses_license_check: bool = Field(
        default=True,
        description="Let admins attach Observations to Groups with incompatible Licenses",
    )
