"""
Record store errors

Every rejected operation raises one of these before any persisted state
changes. The API layer maps each class to an HTTP status in main.py.
"""
from typing import Any, Dict, Optional


class RecordError(Exception):
    """Base class for all record store failures"""

    def __init__(
        self,
        detail: str,
        *,
        field: Optional[str] = None,
        entity: Optional[str] = None,
        record_id: Optional[int] = None,
    ):
        super().__init__(detail)
        self.detail = detail
        self.field = field
        self.entity = entity
        self.record_id = record_id

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": type(self).__name__, "detail": self.detail}
        if self.entity is not None:
            payload["entity"] = self.entity
        if self.field is not None:
            payload["field"] = self.field
        if self.record_id is not None:
            payload["record_id"] = self.record_id
        return payload


class ValidationError(RecordError):
    """Required field missing, bad enumeration label, over-long string or negative amount"""


class UniquenessViolation(RecordError):
    """Duplicate email, license number, medication name or second bill for a visit"""


class RecordReferenceError(RecordError):
    """A patient/practitioner/visit/medication reference does not resolve"""


class RecordNotFound(RecordReferenceError):
    """The addressed record itself does not exist"""


class CascadeFailure(RecordError):
    """A multi-table deletion could not complete and was rolled back"""
