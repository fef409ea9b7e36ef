from __future__ import annotations
from typing import List, Optional


class PipelineError(Exception):
    """Base for every failure the query pipeline surfaces to a caller."""

    kind = "PipelineError"
    status_code = 500

    def __init__(self, message: str, reasons: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.reasons: List[str] = list(reasons or [])

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.kind,
            "message": self.message,
            "reasons": self.reasons,
        }


class SchemaError(PipelineError):
    kind = "SchemaError"
    status_code = 400


class NoSuitableTableError(PipelineError):
    kind = "NoSuitableTableError"
    status_code = 404


class SqlRejectedError(PipelineError):
    kind = "SqlRejectedError"
    status_code = 422

    def __init__(self, reasons: List[str], sql: Optional[str] = None):
        super().__init__("Generated SQL failed safety validation", reasons)
        self.sql = sql


class ExecutionError(PipelineError):
    kind = "ExecutionError"
    status_code = 400


class LlmError(PipelineError):
    kind = "LlmError"
    status_code = 502


class UploadError(PipelineError):
    kind = "UploadError"
    status_code = 400


class TableExistsError(PipelineError):
    kind = "TableExistsError"
    status_code = 409


class InvalidRequestError(PipelineError):
    kind = "InvalidRequestError"
    status_code = 400


class NotFoundError(PipelineError):
    kind = "NotFoundError"
    status_code = 404
