"""Runtime settings — env-driven via pydantic-settings.

Reads from a .env file and CFN_PACKAGE_* environment variables.

Examples
--------
Override via environment::

    export CFN_PACKAGE_LOG_LEVEL=DEBUG
    export CFN_PACKAGE_CACHE_DIR=/var/cache/cfn-package
    export CFN_PACKAGE_S3_ENDPOINT_URL=http://localhost:4566
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings that apply to every packaging run."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CFN_PACKAGE_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Dependency pack cache
    cache_dir: Path = Path("~/.cfn-package")
    manifest_name: str = "package.json"

    # AWS
    region: str | None = None  # falls back to the boto3 session region
    s3_endpoint_url: str | None = None
    cloudformation_endpoint_url: str | None = None
    lambda_endpoint_url: str | None = None
    http_timeout_seconds: float = 60.0

    @property
    def resolved_cache_dir(self) -> Path:
        return self.cache_dir.expanduser()
