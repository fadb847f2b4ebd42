"""
Sales Analytics Reports
Centralized Configuration Management

Pydantic settings with environment variable support, validation, and type safety.
"""

from datetime import date
from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DataLakeSettings(BaseSettings):
    """Data Lake Storage Configuration"""

    model_config = SettingsConfigDict(env_prefix="DATA_")

    raw_path: str = Field(default="./data/raw", description="Directory holding the CSV extracts")
    curated_path: str = Field(default="./data/curated", description="Directory receiving built reports")

    # Extract file names
    sales_file: str = Field(default="gold.fact_sales.csv", description="Sales fact extract")
    customers_file: str = Field(default="gold.dim_customers.csv", description="Customer dimension extract")
    products_file: str = Field(default="gold.dim_products.csv", description="Product dimension extract")

    output_format: str = Field(default="parquet", description="Report file format: parquet or csv")

    @field_validator("output_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate report output format"""
        allowed = ["parquet", "csv"]
        if v.lower() not in allowed:
            raise ValueError(f"Output format must be one of: {allowed}")
        return v.lower()


class ReportSettings(BaseSettings):
    """Report Engine Configuration"""

    model_config = SettingsConfigDict(env_prefix="REPORT_")

    decile_buckets: int = Field(default=10, ge=1, description="Buckets for revenue_decile")
    quartile_buckets: int = Field(default=4, ge=1, description="Buckets for revenue_quartile")
    aggregation_workers: int = Field(default=4, ge=1, description="Worker threads for per-entity reduction")
    trend_window: int = Field(default=3, ge=1, description="Periods in the rolling sales average")
    evaluation_date: Optional[date] = Field(
        default=None,
        description="Pinned evaluation date; today is used when unset",
    )


class MonitoringSettings(BaseSettings):
    """Monitoring and Observability Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="sales-analytics", description="Application name")
    app_env: str = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    data_lake: DataLakeSettings = Field(default_factory=DataLakeSettings)
    reports: ReportSettings = Field(default_factory=ReportSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
