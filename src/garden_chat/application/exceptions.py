from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class ProtocolError(AppError):
    """A websocket frame or API record that cannot be understood."""


class RemoteError(AppError):
    """The chat API answered with a non-success status."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        super().__init__(detail or f"HTTP {status_code}")
