"""Exception hierarchy for the Hue bridge client."""

from __future__ import annotations

from typing import Any, Optional


class HueError(Exception):
    """Base class for every error raised by huebridge."""


class NotFoundError(HueError):
    """Raised when no bridge could be discovered by any method."""

    def __init__(self, message: str = "no bridge was found") -> None:
        super().__init__(message)


class NotExistError(HueError):
    """Raised when a light or group is not known to the bridge."""


class ResponseError(HueError):
    """Raised when the bridge reply is not JSON or not shaped as expected."""

    def __init__(self, message: str, response: Any = None) -> None:
        super().__init__(message)
        self.response = response


class APIError(HueError):
    """Error payload returned by the bridge API.

    The bridge reports failures with HTTP 200 and a body such as
    ``[{"error": {"type": 101, "address": "", "description": "..."}}]``.
    See http://www.developers.meethue.com/documentation/error-messages
    """

    def __init__(
        self,
        code: int,
        address: str = "",
        description: str = "",
        response: Any = None,
    ) -> None:
        super().__init__(description)
        self.code = code
        self.address = address
        self.description = description
        self.response = response

    def __repr__(self) -> str:
        return f"APIError(code={self.code!r}, address={self.address!r}, description={self.description!r})"


class PairingError(HueError):
    """Raised when the bridge refuses or garbles a pairing request."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[int] = None,
        description: Optional[str] = None,
        response: Any = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.description = description
        self.response = response
