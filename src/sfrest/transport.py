from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .exceptions import TransportError

_logger = logging.getLogger(__name__)


class Transport:
    """Thin wrapper over :class:`requests.Session`.

    Owns the connection pool and the per-request timeout. It does not retry:
    ``requests`` exceptions are re-raised as :class:`TransportError` and
    HTTP error statuses are returned to the caller untouched.
    """

    def __init__(
        self,
        timeout: Optional[float] = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.session: Optional[requests.Session] = session or requests.Session()

    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        data: Any = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        if self.session is None:
            raise TransportError("Transport is closed")
        try:
            return self.session.request(
                method,
                url,
                headers=headers,
                data=data,
                params=params,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.RequestException as e:
            _logger.warning("%s %s failed: %s", method, url, e)
            raise TransportError(f"{method} {url} failed: {e}") from e

    @property
    def closed(self) -> bool:
        return self.session is None

    def close(self) -> None:
        """Close the pooled session; safe to call more than once."""
        if self.session is not None:
            self.session.close()
            self.session = None
