class GhprsError(Exception):
    """Base class for all ghprs errors."""


class ApiError(GhprsError):
    pass


class AuthError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class RateLimitError(ApiError):
    pass


class NetworkError(GhprsError):
    pass


class ConfigError(GhprsError):
    pass
