"""
E-Commerce Insights Report
Configuration Module
"""
from .settings import AnalysisSettings, DataSourceSettings, Settings, get_settings

__all__ = ["AnalysisSettings", "DataSourceSettings", "Settings", "get_settings"]
