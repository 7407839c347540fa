"""
Zoho error types and normalization.
Every upstream failure is summarized into an ErrorSummary before it reaches the dashboard.
"""

import re
from dataclasses import dataclass
from typing import Any

import httpx

HTML_TITLE_PATTERN = re.compile(r"<title>(.*?)</title>", re.IGNORECASE | re.DOTALL)


class ZohoApiError(Exception):
    """Non-2xx response from the Zoho Desk API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        reason: str | None = None,
        response_data: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason or ""
        self.response_data = response_data


class ZohoAuthError(Exception):
    """Refresh-token grant failed or returned no access token."""

    def __init__(self, message: str, profile_name: str | None = None, response_data: Any = None):
        super().__init__(message)
        self.profile_name = profile_name
        self.response_data = response_data


class ProfileNotFoundError(Exception):
    def __init__(self, profile_name: str | None):
        super().__init__("Profile not found.")
        self.profile_name = profile_name


@dataclass
class ErrorSummary:
    """Display message plus the raw detail it was derived from."""

    message: str
    full_response: Any = None

    def to_dict(self) -> dict:
        return {"message": self.message, "fullResponse": self.full_response}


def parse_error(error: BaseException) -> ErrorSummary:
    """
    Classify an exception raised while talking to Zoho.

    Args:
        error: Exception from the desk or OAuth service

    Returns:
        ErrorSummary: message for display and raw detail for the response viewer
    """
    if isinstance(error, ZohoApiError):
        data = error.response_data
        if isinstance(data, dict) and data.get("message"):
            return ErrorSummary(str(data["message"]), data)
        if isinstance(data, str) and "<title>" in data.lower():
            match = HTML_TITLE_PATTERN.search(data)
            title = match.group(1).strip() if match else "HTML Error Page Received"
            return ErrorSummary(f"Zoho Server Error: {title}", data)
        return ErrorSummary(
            f"HTTP Error {error.status_code}: {error.reason}",
            data if data else error.reason,
        )

    if isinstance(error, httpx.RequestError):
        return ErrorSummary("Network Error: No response received from Zoho API.", str(error))

    if isinstance(error, ZohoAuthError):
        return ErrorSummary(str(error), error.response_data)

    return ErrorSummary(str(error) or "An unknown error occurred.", type(error).__name__)
