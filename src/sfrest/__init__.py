"""Salesforce REST client with lazy OAuth authentication and query paging."""

from importlib.metadata import PackageNotFoundError, version  # pragma: no cover

try:
    dist_name = "sfrest"
    __version__ = version(dist_name)
except PackageNotFoundError:  # pragma: no cover
    __version__ = "unknown"
finally:
    del version, PackageNotFoundError

from .client import SFRestClient  # noqa: E402
from .config import Environment, SFConfig  # noqa: E402
from .exceptions import (  # noqa: E402
    AuthError,
    AuthErrorKind,
    RemoteApiError,
    SFRestError,
    TokenException,
    TransportError,
)
from .providers import (  # noqa: E402
    AuthorizationCodeTokenProvider,
    ClientCredentialsTokenProvider,
    JwtBearerTokenProvider,
    TokenProvider,
    UserPassTokenProvider,
)
from .query import QueryCursor, QueryResult  # noqa: E402
from .storage import FileTokenStorage, InMemoryTokenStorage, TokenStorage  # noqa: E402
from .token import Token  # noqa: E402

__all__ = [
    "__version__",
    "SFRestClient",
    "Environment",
    "SFConfig",
    "AuthError",
    "AuthErrorKind",
    "RemoteApiError",
    "SFRestError",
    "TokenException",
    "TransportError",
    "AuthorizationCodeTokenProvider",
    "ClientCredentialsTokenProvider",
    "JwtBearerTokenProvider",
    "TokenProvider",
    "UserPassTokenProvider",
    "QueryCursor",
    "QueryResult",
    "FileTokenStorage",
    "InMemoryTokenStorage",
    "TokenStorage",
    "Token",
]
