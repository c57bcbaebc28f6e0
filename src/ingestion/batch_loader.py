"""
Source Table Loader

Reads the four source tables (orders, order_items, products, users) from a
directory of CSV, JSON, JSON Lines or Parquet files into Polars DataFrames.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union
import hashlib

import polars as pl
import structlog
from pydantic import BaseModel

from src.analytics.exceptions import SourceLoadError
from src.config import get_settings

logger = structlog.get_logger(__name__)

SOURCE_TABLES = ("orders", "order_items", "products", "users")


class FileFormat(str, Enum):
    """Supported file formats"""
    CSV = "csv"
    JSON = "json"
    JSONL = "jsonl"
    PARQUET = "parquet"


class LoadStatus(str, Enum):
    """Table load status"""
    COMPLETED = "completed"
    FAILED = "failed"


class LoadResult(BaseModel):
    """Result of loading one source table"""
    table: str
    file_path: str
    status: LoadStatus
    rows_loaded: int = 0
    error_message: Optional[str] = None
    load_duration_seconds: float = 0
    started_at: datetime
    completed_at: Optional[datetime] = None
    file_hash: Optional[str] = None


@dataclass
class SourceTables:
    """Snapshot of the source tables a report runs against"""
    orders: pl.DataFrame
    order_items: pl.DataFrame
    products: pl.DataFrame
    users: pl.DataFrame

    def as_dict(self) -> Dict[str, pl.DataFrame]:
        return {name: getattr(self, name) for name in SOURCE_TABLES}

    @property
    def row_counts(self) -> Dict[str, int]:
        return {name: df.height for name, df in self.as_dict().items()}


class SourceLoader:
    """
    Loads source tables from a directory.

    Each table is read from ``<directory>/<table>.<format>``.

    Example:
        loader = SourceLoader("data/raw", FileFormat.CSV)
        tables = loader.load_all()
    """

    null_values: List[str] = ["", "NULL", "null", "None", "NA", "N/A"]

    def __init__(
        self,
        directory: Optional[Union[str, Path]] = None,
        file_format: Optional[Union[str, FileFormat]] = None,
    ):
        settings = get_settings()
        self.directory = Path(directory or settings.data_source.source_path)
        self.file_format = FileFormat(file_format or settings.data_source.source_format)
        self.results: List[LoadResult] = []

    def _compute_file_hash(self, file_path: Path) -> str:
        """Compute MD5 hash of file for audit"""
        hash_md5 = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(4096), b""):
                hash_md5.update(chunk)
        return hash_md5.hexdigest()

    def _read_csv(self, file_path: Path) -> pl.DataFrame:
        return pl.read_csv(
            file_path,
            null_values=self.null_values,
            try_parse_dates=True,
        )

    def _read_json(self, file_path: Path) -> pl.DataFrame:
        return pl.read_json(file_path)

    def _read_jsonl(self, file_path: Path) -> pl.DataFrame:
        return pl.read_ndjson(file_path)

    def _read_parquet(self, file_path: Path) -> pl.DataFrame:
        return pl.read_parquet(file_path)

    def _read_file(self, file_path: Path) -> pl.DataFrame:
        """Read file based on format"""
        readers = {
            FileFormat.CSV: self._read_csv,
            FileFormat.JSON: self._read_json,
            FileFormat.JSONL: self._read_jsonl,
            FileFormat.PARQUET: self._read_parquet,
        }
        return readers[self.file_format](file_path)

    def path_for(self, table: str) -> Path:
        return self.directory / f"{table}.{self.file_format.value}"

    def load_table(self, table: str) -> pl.DataFrame:
        """
        Load a single source table.

        Raises:
            SourceLoadError: If the file is missing or cannot be parsed
        """
        file_path = self.path_for(table)
        started_at = datetime.utcnow()

        result = LoadResult(
            table=table,
            file_path=str(file_path),
            status=LoadStatus.FAILED,
            started_at=started_at,
        )
        self.results.append(result)

        logger.info("Loading source table", table=table, file=str(file_path))

        if not file_path.exists():
            result.error_message = "file not found"
            result.completed_at = datetime.utcnow()
            logger.error("Source table missing", table=table, file=str(file_path))
            raise SourceLoadError(table, f"file not found: {file_path}")

        try:
            df = self._read_file(file_path)
        except (pl.exceptions.PolarsError, OSError) as e:
            result.error_message = str(e)
            result.completed_at = datetime.utcnow()
            logger.error("Source table unreadable", table=table, error=str(e))
            raise SourceLoadError(table, str(e)) from e

        result.file_hash = self._compute_file_hash(file_path)
        result.status = LoadStatus.COMPLETED
        result.rows_loaded = df.height
        result.completed_at = datetime.utcnow()
        result.load_duration_seconds = (result.completed_at - started_at).total_seconds()

        logger.info(
            "Source table loaded",
            table=table,
            rows_loaded=df.height,
            duration_seconds=result.load_duration_seconds,
        )
        return df

    def load_all(self) -> SourceTables:
        """Load every source table"""
        self.results = []
        tables = {name: self.load_table(name) for name in SOURCE_TABLES}
        return SourceTables(**tables)
