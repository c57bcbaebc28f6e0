"""
Data Ingestion Module
"""
from .batch_loader import FileFormat, LoadResult, SourceLoader, SourceTables, SOURCE_TABLES

__all__ = [
    "FileFormat",
    "LoadResult",
    "SourceLoader",
    "SourceTables",
    "SOURCE_TABLES",
]
