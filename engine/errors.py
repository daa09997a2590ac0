"""
Structured errors raised by the audit core
"""
from typing import Optional


class AuditError(Exception):
    """Base class for audit core errors"""


class InvalidRecord(AuditError, ValueError):
    """A trip record that cannot be evaluated (e.g. no driver reference)"""

    def __init__(self, reason: str, record_id: Optional[str] = None):
        self.reason = reason
        self.record_id = record_id
        label = f"Trip {record_id}" if record_id else "Trip"
        super().__init__(f"{label}: {reason}")


class ConfigurationError(AuditError, ValueError):
    """An AuditConfig with a negative or inverted threshold"""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")
