from .client import PortainerClient, PortainerStack
from .errors import ApiError, AuthError, NetworkError

__all__ = ["PortainerClient", "PortainerStack", "ApiError", "AuthError", "NetworkError"]
