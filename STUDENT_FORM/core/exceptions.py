"""
Error taxonomy for the form service.

Services raise these; the handler registered in main.py turns them into
``{"success": false, ...}`` JSON bodies with the matching status code.
"""

from typing import Any, Dict, List, Optional


class FormServiceError(Exception):
    """Base exception for every error that crosses the HTTP boundary"""

    status_code = 500

    def __init__(self, message: str, debug: Optional[str] = None):
        self.message = message
        self.debug = debug
        super().__init__(message)

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.message}
        if include_debug and self.debug:
            body["debug"] = self.debug
        return body


class BadRequestError(FormServiceError):
    """Malformed, missing or badly formatted input"""

    status_code = 400


class ValidationFailedError(FormServiceError):
    """One or more field rules were violated"""

    status_code = 400

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Validation failed")

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        return {"success": False, "errors": self.errors}


class UnauthorizedError(FormServiceError):
    """Missing, invalid or expired admin session"""

    status_code = 401

    def __init__(self, message: str = "Unauthorized access"):
        super().__init__(message)


class RateLimitedError(FormServiceError):
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        self.retry_after = retry_after
        super().__init__(message)


class InternalServiceError(FormServiceError):
    status_code = 500

    def __init__(self, message: str = "Internal server error", debug: Optional[str] = None):
        super().__init__(message, debug=debug)
