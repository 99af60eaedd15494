"""Errors reported by the Toxiproxy HTTP API."""

from __future__ import annotations


class ApiError(Exception):
    """An error the server answered with, carrying its HTTP status.

    ``context`` holds the description of the operation that failed. When it is
    set, it is placed in front of the server's message.
    """

    def __init__(self, message: str, status: int, context: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.context = context

    def __str__(self) -> str:
        text = f"HTTP {self.status}: {self.message}"
        if self.context:
            return f"{self.context}: {text}"
        return text

    def __repr__(self) -> str:
        return (
            f"ApiError(message={self.message!r}, status={self.status!r}, "
            f"context={self.context!r})"
        )