from __future__ import annotations

import logging
import weakref
from typing import Any, Dict, Iterator, List, Optional

from .config import DEFAULT_API_VERSION, DEFAULT_TIMEOUT, SFConfig
from .exceptions import CursorExhaustedError, RemoteApiError
from .executor import RequestExecutor, ResponseShape
from .providers import TokenProvider, provider_from_config
from .query import QueryCursor, QueryResult
from .storage import InMemoryTokenStorage, TokenStorage
from .transport import Transport

_logger = logging.getLogger(__name__)

BASE_URI_APEX = "/services/apexrest"


# ----------------------------------------------------------------------
# Main API client
# ----------------------------------------------------------------------
class SFRestClient:
    """Salesforce REST API client with lazy, cached OAuth authentication.

    The first request mints a token through ``token_provider`` and caches it
    in ``token_storage``. A request rejected with an invalid-session error
    clears the cache and raises :class:`~sfrest.exceptions.TokenException`;
    the next request authenticates again.
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        token_storage: Optional[TokenStorage] = None,
        *,
        transport: Optional[Transport] = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.token_provider = token_provider
        self.token_storage = token_storage if token_storage is not None else InMemoryTokenStorage()
        self.api_version = api_version

        self._owns_transport = transport is None
        self.transport = transport or Transport(timeout=timeout)
        self.executor = RequestExecutor(self.token_provider, self.token_storage, self.transport)

        self._closed = False
        # runs on garbage collection or at interpreter exit, whichever is first
        self._finalizer = (
            weakref.finalize(self, self.transport.close) if self._owns_transport else None
        )

    @classmethod
    def from_config(
        cls,
        cfg: Optional[SFConfig] = None,
        token_storage: Optional[TokenStorage] = None,
    ) -> SFRestClient:
        cfg = cfg or SFConfig.from_env()
        return cls(
            provider_from_config(cfg),
            token_storage,
            api_version=cfg.api_version,
            timeout=cfg.timeout,
        )

    @property
    def environment(self):
        return getattr(self.token_provider, "environment", None)

    @property
    def rest_base(self) -> str:
        return f"/services/data/{self.api_version}"

    # --------------------------- Generic verbs -----------------------

    def get_json_string(self, uri: str, method: str = "GET", body: Any = None, *uri_variables: Any) -> str:
        return self.executor.execute(uri, method, body, ResponseShape.STRING, *uri_variables)

    def get_object(self, uri: str, method: str = "GET", body: Any = None, *uri_variables: Any) -> Any:
        return self.executor.execute(uri, method, body, ResponseShape.OBJECT, *uri_variables)

    def get_map(self, uri: str, method: str = "GET", body: Any = None, *uri_variables: Any) -> Dict[str, Any]:
        return self.executor.execute(uri, method, body, ResponseShape.MAP, *uri_variables)

    def get_map_list(
        self, uri: str, method: str = "GET", body: Any = None, *uri_variables: Any
    ) -> List[Dict[str, Any]]:
        return self.executor.execute(uri, method, body, ResponseShape.MAP_LIST, *uri_variables)

    def get_list(self, uri: str, method: str = "GET", body: Any = None, *uri_variables: Any) -> List[Any]:
        return self.executor.execute(uri, method, body, ResponseShape.LIST, *uri_variables)

    def apex(self, path: str, method: str = "GET", body: Any = None) -> Any:
        """Call a custom Apex REST endpoint under ``/services/apexrest``."""
        return self.get_object(f"{BASE_URI_APEX}/{path.lstrip('/')}", method, body)

    # --------------------------- sObjects ----------------------------

    def get_sobject(self, sobject_type: str, record_id: str, *fields: str) -> Dict[str, Any]:
        """Return one record, optionally restricted to ``fields``."""
        uri = self.rest_base + "/sobjects/{type}/{id}"
        if fields:
            uri += "?fields=" + ",".join(fields)
        return self.get_map(uri, "GET", None, sobject_type, record_id)

    def list_sobjects(self) -> Dict[str, Any]:
        """Return /sobjects (global describe)."""
        return self.get_map(self.rest_base + "/sobjects")

    def get_sobject_metadata(self, sobject_type: str, describe: bool = False) -> Dict[str, Any]:
        """Return /sobjects/{type}, or /sobjects/{type}/describe when ``describe``."""
        uri = self.rest_base + "/sobjects/{type}"
        if describe:
            uri += "/describe"
        return self.get_map(uri, "GET", None, sobject_type)

    def limits(self) -> Dict[str, Any]:
        """Return API usage limits."""
        return self.get_map(self.rest_base + "/limits")

    def get_current_user_id(self) -> str:
        identity = self.get_map(self.rest_base).get("identity")
        if not identity:
            raise RemoteApiError(
                None, "UNEXPECTED_RESPONSE", "REST root response has no identity URL"
            )
        return identity.rstrip("/").rsplit("/", 1)[-1]

    def get_current_username(self) -> str:
        user = self.get_sobject("User", self.get_current_user_id(), "Username")
        return user.get("Username")

    # --------------------------- Queries -----------------------------

    def query(self, soql: str) -> QueryResult:
        """Run a SOQL query and return its first page."""
        _logger.debug("Executing Query: %s", soql)
        return self._first_page(self.rest_base + "/query/?q={q}", soql)

    def query_all(self, soql: str) -> QueryResult:
        """Like :meth:`query`, including deleted and archived rows."""
        _logger.debug("Executing QueryAll: %s", soql)
        return self._first_page(self.rest_base + "/queryAll/?q={q}", soql)

    def query_more(self, cursor: QueryCursor) -> QueryResult:
        """Fetch the page after ``cursor``.

        Raises :class:`CursorExhaustedError` without any I/O if the cursor is
        already done.
        """
        if cursor.done or not cursor.locator:
            raise CursorExhaustedError("Query is done; there is no next page")
        payload = self.get_map(cursor.locator)
        return QueryResult.from_page(payload, cursor.soql, previous=cursor)

    def iter_query(self, soql: str, include_deleted: bool = False) -> Iterator[Dict[str, Any]]:
        """Yield records across pages via nextRecordsUrl."""
        page = self.query_all(soql) if include_deleted else self.query(soql)
        yield from page.records
        while not page.done:
            page = self.query_more(page.cursor)
            yield from page.records

    def _first_page(self, uri: str, soql: str) -> QueryResult:
        payload = self.get_map(uri, "GET", None, soql)
        return QueryResult.from_page(payload, soql)

    # --------------------------- Lifecycle ---------------------------

    def close(self) -> None:
        """Release the connection pool; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._finalizer is not None:
            self._finalizer()
        _logger.debug("Client closed")

    def __enter__(self) -> SFRestClient:
        return self

    def __exit__(self, *args) -> None:
        self.close()
