from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="NODE_ENV")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # AWS / data
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    table_name: str | None = Field(default=None, validation_alias="TABLE_NAME")
    bucket_name: str | None = Field(default=None, validation_alias="BUCKET_NAME")

    # Client timeouts in milliseconds; the per-service value wins over TIMEOUT.
    dynamodb_timeout_ms: int = Field(
        default=1000, validation_alias=AliasChoices("DYNAMODB_TIMEOUT", "TIMEOUT")
    )
    s3_timeout_ms: int = Field(
        default=1000, validation_alias=AliasChoices("S3_TIMEOUT", "TIMEOUT")
    )

    # Pagination
    default_page_limit: int = Field(default=25, validation_alias="DEFAULT_PAGE_LIMIT")

    # Field-level encryption
    eem_field: str = Field(default="eem", validation_alias="EEM_FIELD")
    master_key_alias: str | None = Field(default=None, validation_alias="MASTER_KEY_ALIAS")
    kms_regions: str | None = Field(default=None, validation_alias="KMS_REGIONS")
    field_encryption_key: str | None = Field(
        default=None, validation_alias="FIELD_ENCRYPTION_KEY"
    )

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        if v == "test":
            return "test"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    @property
    def kms_region_list(self) -> list[str]:
        return [r.strip() for r in (self.kms_regions or "").split(",") if r.strip()]

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Local and test runs may work with a partial config (tests inject fake
        tables), but production must name its table and carry a real key.
        """
        if not self.is_production:
            return

        missing: list[str] = []
        if not self.table_name:
            missing.append("TABLE_NAME")
        if not self.field_encryption_key:
            missing.append("FIELD_ENCRYPTION_KEY")

        if missing:
            raise RuntimeError(
                "Missing required production environment variables: "
                + ", ".join(missing)
            )

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs / diagnostics.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "log_level": self.log_level,
            "aws": {
                "aws_region": self.aws_region,
                "table_name": self.table_name,
                "bucket_name": self.bucket_name,
                "dynamodb_timeout_ms": self.dynamodb_timeout_ms,
                "s3_timeout_ms": self.s3_timeout_ms,
            },
            "pagination": {"default_page_limit": self.default_page_limit},
            "encryption": {
                "eem_field": self.eem_field,
                "master_key_alias": self.master_key_alias,
                "kms_regions": self.kms_region_list,
                "field_encryption_key_configured": _has(self.field_encryption_key),
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s
