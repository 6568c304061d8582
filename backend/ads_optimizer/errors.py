"""
Error taxonomy shared by services and routers.
Routers translate these into HTTP status codes; every error body is {"error": str}.
"""


class OptimizerError(Exception):
    """Base class for errors raised by the optimizer services."""

    status_code = 500


class ConfigurationError(OptimizerError):
    """Missing optimizer config or platform credentials. Fatal for the request."""

    status_code = 500


class ValidationError(OptimizerError):
    status_code = 400


class NotFoundError(OptimizerError):
    status_code = 404


class RunInProgressError(OptimizerError):
    """Another optimizer run holds the advisory lock."""

    status_code = 409


class PlatformAPIError(OptimizerError):
    """An ad platform rejected a request or returned something unparsable."""

    status_code = 500

    def __init__(self, platform: str, message: str):
        self.platform = platform
        super().__init__(message)
