"""Exceptions raised by litestar-smartlinks.

The resolution engine itself never raises for a structurally valid
configuration. These exceptions belong to the layers around it: storage
lookups, boundary validation and backend failures.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "ConfigValidationError",
    "LinkNotFoundError",
    "SmartlinkError",
    "StorageError",
    "ValidationIssue",
]


class SmartlinkError(Exception):
    """Base exception for all smartlink errors."""


class LinkNotFoundError(SmartlinkError):
    """Raised when a link id has no stored configuration."""

    def __init__(self, link_id: str) -> None:
        self.link_id = link_id
        super().__init__(f"Smartlink '{link_id}' not found")


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One problem found while validating an inbound document."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}" if self.path else self.message


class ConfigValidationError(SmartlinkError):
    """Raised when an inbound configuration, context or query is malformed."""

    def __init__(self, issues: list[ValidationIssue] | str) -> None:
        if isinstance(issues, str):
            issues = [ValidationIssue(path="", message=issues)]
        self.issues = issues
        super().__init__("; ".join(str(issue) for issue in issues))

    def to_dict(self) -> list[dict[str, str]]:
        """Serialize the issues for an error response."""
        return [{"path": issue.path, "message": issue.message} for issue in self.issues]


class StorageError(SmartlinkError):
    """Raised when a storage backend operation fails."""
