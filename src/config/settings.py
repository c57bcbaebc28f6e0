"""
E-Commerce Insights Report
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from datetime import date
from functools import lru_cache
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DataSourceSettings(BaseSettings):
    """Source and derived table locations"""

    model_config = SettingsConfigDict(
        env_prefix="DATA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    source_path: str = Field(default="./data/raw", description="Directory holding the source tables")
    source_format: str = Field(default="csv", description="Source file format: csv, parquet, json or jsonl")
    output_path: str = Field(default="./data/curated", description="Directory for derived tables")
    output_format: str = Field(default="parquet", description="Derived table format: parquet or csv")

    @field_validator("source_format")
    @classmethod
    def validate_source_format(cls, v: str) -> str:
        """Validate source file format"""
        allowed = ["csv", "parquet", "json", "jsonl"]
        if v.lower() not in allowed:
            raise ValueError(f"Source format must be one of: {allowed}")
        return v.lower()

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate derived table format"""
        allowed = ["parquet", "csv"]
        if v.lower() not in allowed:
            raise ValueError(f"Output format must be one of: {allowed}")
        return v.lower()


class AnalysisSettings(BaseSettings):
    """Business rules applied by the aggregation passes"""

    model_config = SettingsConfigDict(
        env_prefix="INSIGHTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    excluded_statuses: List[str] = Field(
        default=["cancelled", "returned"],
        description="Order and line-item statuses removed before any aggregation",
    )
    censoring_cutoff: date = Field(
        default=date(2024, 1, 1),
        description="One-time buyers on or after this date are treated as still active",
    )
    days_per_year: int = Field(default=365, description="Days used to convert lifespan to years")
    top_n: int = Field(default=10, description="Number of rows kept in the top-sellers view")
    enable_validation: bool = Field(default=True, description="Run data quality checks before the report")

    @field_validator("excluded_statuses")
    @classmethod
    def normalize_statuses(cls, v: List[str]) -> List[str]:
        """Statuses are compared case-insensitively"""
        return [status.strip().lower() for status in v]

    @field_validator("days_per_year", "top_n")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Value must be positive")
        return v


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or console")


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
    app_name: str = Field(default="ecommerce-insights", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    data_source: DataSourceSettings = Field(default_factory=DataSourceSettings)
    analysis: AnalysisSettings = Field(default_factory=AnalysisSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

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
