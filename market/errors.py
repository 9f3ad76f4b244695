"""
Errors raised by application services and rendered by the API layer.
"""


class ServiceError(Exception):
    """Service error with a machine-readable code."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class GatewayError(Exception):
    """Payment gateway returned an error or an unreadable response."""

    def __init__(self, gateway: str, message: str, status_code: int | None = None, payload=None):
        self.gateway = gateway
        self.message = message
        self.status_code = status_code
        self.payload = payload
        super().__init__(f"{gateway} API error: {message}")
