from __future__ import annotations

from typing import Any, Optional

NOT_FOUND = "NOT_FOUND"
BAD_RESPONSE = "BAD_RESPONSE"
TRANSPORT = "TRANSPORT"
NETWORK = "NETWORK"
INVALID_ID = "INVALID_ID"
INVALID_CONFIG = "INVALID_CONFIG"
UNEXPECTED = "UNEXPECTED"

ERROR_CODES = {NOT_FOUND, BAD_RESPONSE, TRANSPORT, NETWORK, INVALID_ID, INVALID_CONFIG, UNEXPECTED}


class WikimindError(Exception):
    """Single reportable error kind; ``code`` tells the failure classes apart."""

    def __init__(self, code: str, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code if code in ERROR_CODES else UNEXPECTED
        self.message = message
        self.details = details or {}

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"
