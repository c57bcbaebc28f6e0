"""
Data Transformation Module
"""
from .cleaners import DataCleaner, clean_dataframe

__all__ = [
    "DataCleaner",
    "clean_dataframe",
]
