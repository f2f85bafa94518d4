from __future__ import annotations


class BillDocsError(Exception):
    """Base class for document generation failures."""


class TemplateNotFoundError(BillDocsError, FileNotFoundError):
    """A named page template is missing or unreadable."""

    def __init__(self, name: str, detail: str | None = None) -> None:
        self.name = name
        message = f"Template not found: {name}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class InvalidRecordError(BillDocsError, ValueError):
    """An input record is missing required fields or has mistyped values."""
