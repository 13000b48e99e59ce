from typing import Any, Dict, List, Optional


class GatewayError(Exception):
    """Base for every error the gateway maps to an HTTP status."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def payload(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(GatewayError):
    status_code = 400


class AuthorizationError(GatewayError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(GatewayError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class RateLimitError(GatewayError):
    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message)


class UpstreamError(GatewayError):
    status_code = 502

    def __init__(self, status: Optional[int], tried: List[str], upstream: str = ""):
        super().__init__("Upstream error")
        self.status = status
        self.tried = list(tried)
        self.upstream = (upstream or "")[:500]

    def payload(self) -> Dict[str, Any]:
        return {"error": self.message, "status": self.status, "tried": self.tried, "upstream": self.upstream}


class ExtractionError(GatewayError):
    status_code = 500

    def __init__(self, raw: str = ""):
        super().__init__("Invalid model response")
        self.raw = (raw or "")[:500]

    def payload(self) -> Dict[str, Any]:
        return {"error": self.message, "raw": self.raw}


class StorageUnavailableError(GatewayError):
    status_code = 501

    def __init__(self, what: str = "storage"):
        super().__init__(f"{what} not configured")


class ConfigurationError(GatewayError):
    status_code = 500

    def __init__(self, message: str = "Server not configured"):
        super().__init__(message)
