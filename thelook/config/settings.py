"""
TheLook E-Commerce Analytics
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DataLakeSettings(BaseSettings):
    """Data Lake Storage Configuration"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    raw_path: str = Field(default="./data/raw", description="Raw CSV zone path")
    reports_path: str = Field(default="./data/reports", description="Report output path")
    dead_letter_path: str = Field(default="./data/dead_letter", description="Rejected records path")
    curated_path: str = Field(default="./data/curated", description="Typed table output path")

    # File formats
    default_format: str = Field(default="csv", description="Default report format")
    null_values: List[str] = Field(
        default=["", "NULL", "null", "None", "NA", "N/A"],
        description="Raw values treated as missing",
    )

    @field_validator("default_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate report format"""
        allowed = ["csv", "parquet", "json"]
        if v.lower() not in allowed:
            raise ValueError(f"Report format must be one of: {allowed}")
        return v.lower()


class AnalyticsSettings(BaseSettings):
    """Thresholds used by the analytical reports"""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    # Order value segmentation
    order_value_high_threshold: float = Field(default=870.0, description="Orders above this are High value")
    order_value_mid_threshold: float = Field(default=440.0, description="Orders above this are Mid value")

    # Churn
    churn_threshold_days: int = Field(default=180, ge=0, description="Inactivity days before a customer is at risk")

    # RFM
    rfm_buckets: int = Field(default=4, ge=1, le=9, description="Quantile buckets per RFM metric")

    # Products and logistics
    late_shipping_days: int = Field(default=3, ge=0, description="Days to ship above which an item is late")
    min_product_sales: int = Field(default=50, ge=0, description="Minimum sold items for product return rates")
    top_n: int = Field(default=10, ge=1, description="Row limit for top-N reports")

    @model_validator(mode="after")
    def validate_order_value_thresholds(self) -> "AnalyticsSettings":
        """Mid threshold must sit below the high threshold"""
        if self.order_value_mid_threshold >= self.order_value_high_threshold:
            raise ValueError(
                "order_value_mid_threshold must be lower than order_value_high_threshold"
            )
        return self


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: json or text")


class DataQualitySettings(BaseSettings):
    """Data Quality Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    enable_data_quality_checks: bool = Field(
        default=True,
        description="Run validation suites before reporting",
    )
    fail_on_validation_error: bool = Field(
        default=False,
        description="Abort the pipeline when an error-level check fails",
    )


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_prefix="THELOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = Field(default="development", description="Environment")

    # Subsystem configurations
    data_lake: DataLakeSettings = Field(default_factory=DataLakeSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    data_quality: DataQualitySettings = Field(default_factory=DataQualitySettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Convenience function for accessing settings
settings = get_settings()
