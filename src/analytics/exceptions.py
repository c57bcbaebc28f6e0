"""
Report Errors

Data-quality conditions the report treats as policy (orphan rows, zero
previous-year sales, unresolvable users) are handled inline and never raise.
These exceptions cover inputs the report cannot work with at all.
"""

from typing import Dict, Iterable, TYPE_CHECKING

if TYPE_CHECKING:
    from src.quality.validators import ValidationResult


class InsightsError(Exception):
    """Base class for report errors"""


class MissingColumnsError(InsightsError):
    """A table lacks columns an aggregation needs"""

    def __init__(self, table: str, missing: Iterable[str]):
        self.table = table
        self.missing = sorted(missing)
        super().__init__(f"Table '{table}' is missing required columns: {self.missing}")


class SourceLoadError(InsightsError):
    """A source table could not be read"""

    def __init__(self, table: str, reason: str):
        self.table = table
        self.reason = reason
        super().__init__(f"Failed to load source table '{table}': {reason}")


class SourceValidationError(InsightsError):
    """Error-severity data quality checks failed on one or more source tables"""

    def __init__(self, results: Dict[str, "ValidationResult"]):
        self.results = results
        failed = {
            table: [c.name for c in result.checks if not c.passed]
            for table, result in results.items()
            if result.failed_checks > 0
        }
        super().__init__(f"Source validation failed: {failed}")
