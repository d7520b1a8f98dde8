from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    SOURCE_NOT_FOUND = "SOURCE_NOT_FOUND"
    SOURCE_FETCH_FAILED = "SOURCE_FETCH_FAILED"
    DOCUMENT_MALFORMED = "DOCUMENT_MALFORMED"
    SIGNATURE_MISMATCH = "SIGNATURE_MISMATCH"
    INVALID_REQUEST = "INVALID_REQUEST"


class StructuralReason(StrEnum):
    UNEXPECTED_END_OF_INPUT = "UNEXPECTED_END_OF_INPUT"
    UNEXPECTED_LINE = "UNEXPECTED_LINE"
    MISSING_DIVIDER = "MISSING_DIVIDER"


class JetpacksError(Exception):
    """Raised for all expected failure conditions.

    Caught by the HTTP handlers in server.py and serialised into the JSON
    error envelope. Never catch this inside business logic — let it propagate
    so the caller receives a structured error with a suggestion.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }


class StructuralError(JetpacksError):
    """The Markdown source does not follow the title → divider → articles layout.

    Always fatal to a parse: no partial document is ever produced.
    """

    def __init__(
        self,
        reason: StructuralReason,
        message: str,
        line_number: int,
    ) -> None:
        super().__init__(
            code=ErrorCode.DOCUMENT_MALFORMED,
            message=f"{message} (line {line_number})",
            suggestion="Check the source README layout: title, description, divider, articles.",
            recoverable=False,
        )
        self.reason = reason
        self.line_number = line_number
