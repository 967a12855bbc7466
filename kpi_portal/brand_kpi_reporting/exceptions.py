# kpi_portal/brand_kpi_reporting/exceptions.py
"""Custom exceptions for the brand KPI reporting engine."""

from typing import Optional

from .constants import VALIDATION_ERROR, STORE_UNAVAILABLE, DEFINITION_ERROR


class ReportingError(RuntimeError):
    """Base error for the reporting engine."""

    code = 'REPORTING_ERROR'

    def __init__(self, message: str, kpi_id: Optional[str] = None):
        super().__init__(message)
        self.kpi_id = kpi_id


class ValidationError(ReportingError):
    """Raised when a period or id reaching the engine is malformed."""

    code = VALIDATION_ERROR


class StoreUnavailableError(ReportingError):
    """Raised when the underlying table store fails. Never retried here."""

    code = STORE_UNAVAILABLE


class DefinitionError(ReportingError):
    """Raised when a KPI definition cannot be resolved."""

    code = DEFINITION_ERROR
