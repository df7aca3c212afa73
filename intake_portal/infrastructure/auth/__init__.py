"""Account management providers."""

from .providers import AuthProvider, FunctionsAuthProvider, InMemoryAuthProvider
from ...config.settings import AuthConfig


def create_auth_provider(config: AuthConfig) -> AuthProvider:
    """Build the configured auth provider."""
    if config.backend == "memory":
        return InMemoryAuthProvider({})
    return FunctionsAuthProvider({
        "base_url": config.functions_base_url,
        "token": config.functions_token,
        "timeout": config.timeout,
    })


__all__ = [
    "AuthProvider",
    "FunctionsAuthProvider",
    "InMemoryAuthProvider",
    "create_auth_provider",
]
