"""Authenticated request execution.

Every REST call goes through :meth:`RequestExecutor.execute`, which makes
sure a token is available (minting one lazily), resolves the URL against
the token's instance URL, dispatches the request and classifies failures.
A rejected token is cleared from storage and the error is re-raised; the
call itself is never retried here.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from urllib.parse import quote, urlparse

import requests

from .exceptions import RemoteApiError, TokenException
from .providers import TokenProvider
from .storage import TokenStorage
from .token import Token
from .transport import Transport

_logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json;charset=UTF-8"

# errorCode values meaning the session behind the bearer token is gone
TOKEN_ERROR_CODES = frozenset(
    {
        "INVALID_SESSION_ID",
        "INVALID_AUTH_HEADER",
        "INVALID_OPERATION_WITH_EXPIRED_PASSWORD",
    }
)

_PLACEHOLDER = re.compile(r"\{[^{}]+\}")


class ResponseShape(Enum):
    STRING = "string"
    OBJECT = "object"
    MAP = "map"
    MAP_LIST = "map_list"
    LIST = "list"


# ----------------------------------------------------------------------
# URL helpers
# ----------------------------------------------------------------------


def expand_uri(template: str, *variables: Any) -> str:
    """Fill ``{name}`` placeholders in order, percent-encoding each value.

    With no variables the template is returned unchanged, so server-issued
    URIs pass through verbatim.
    """
    if not variables:
        return template
    placeholders = _PLACEHOLDER.findall(template)
    if len(placeholders) != len(variables):
        raise ValueError(
            f"URI template {template!r} has {len(placeholders)} placeholder(s) "
            f"but {len(variables)} variable(s) were given"
        )
    values = iter(variables)
    return _PLACEHOLDER.sub(lambda _m: quote(str(next(values)), safe=""), template)


def is_absolute(uri: str) -> bool:
    parsed = urlparse(uri)
    return bool(parsed.scheme and parsed.netloc)


def resolve_url(uri: str, instance_url: str) -> str:
    """Join a relative URI to the instance URL with exactly one slash."""
    if is_absolute(uri):
        return uri
    return f"{instance_url.rstrip('/')}/{uri.lstrip('/')}"


def parse_error_payload(resp: requests.Response) -> Tuple[Optional[str], str]:
    """Return ``(errorCode, message)`` from a failed REST response.

    Salesforce sends ``[{"errorCode": ..., "message": ...}]``; a single
    object or an OAuth-style ``{"error": ..., "error_description": ...}``
    body is accepted as well.
    """
    try:
        payload = resp.json()
    except ValueError:
        return None, resp.text or f"HTTP {resp.status_code}"

    if isinstance(payload, list) and payload:
        payload = payload[0]
    if not isinstance(payload, dict):
        return None, resp.text or f"HTTP {resp.status_code}"

    code = payload.get("errorCode") or payload.get("error")
    message = payload.get("message") or payload.get("error_description") or resp.text
    return code, message or f"HTTP {resp.status_code}"


# ----------------------------------------------------------------------
# Executor
# ----------------------------------------------------------------------
class RequestExecutor:
    def __init__(
        self,
        token_provider: TokenProvider,
        token_storage: TokenStorage,
        transport: Transport,
    ) -> None:
        self.token_provider = token_provider
        self.token_storage = token_storage
        self.transport = transport
        self._auth_lock = threading.Lock()

    def current_token(self) -> Token:
        """Return the cached token, minting and caching one if the cache is empty."""
        token = self.token_storage.get_token()
        if token is not None:
            return token

        # one fetch per cold cache; concurrent callers wait for it
        with self._auth_lock:
            token = self.token_storage.get_token()
            if token is None:
                _logger.debug("Token not found, requesting new token...")
                token = self.token_provider.request_token()
                _logger.debug("Got token: %r", token)
                self.token_storage.save_token(token)
                _logger.debug("Token saved successfully")
        return token

    def execute(
        self,
        uri: str,
        method: str = "GET",
        body: Any = None,
        shape: ResponseShape = ResponseShape.MAP,
        *uri_variables: Any,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        method = method.upper()
        path = expand_uri(uri, *uri_variables)

        token = self.current_token()
        url = resolve_url(path, token.instance_url)
        headers = {
            "Authorization": f"Bearer {token.access_token}",
            "Content-Type": CONTENT_TYPE,
            "Accept": "application/json",
        }

        _logger.debug("%s %s", method, url)
        resp = self.transport.send(
            method, url, headers=headers, data=_encode_body(body), params=params
        )

        if resp.status_code >= 400:
            try:
                self._raise_for_error(resp)
            except TokenException:
                self.token_storage.clear_token()
                _logger.debug("Invalid token cleared successfully")
                raise

        if method == "HEAD":
            headers_out = dict(resp.headers)
            return json.dumps(headers_out) if shape is ResponseShape.STRING else headers_out
        return _decode(resp, shape)

    # --------------------------- Internal helpers --------------------

    @staticmethod
    def _raise_for_error(resp: requests.Response) -> None:
        code, message = parse_error_payload(resp)
        if code in TOKEN_ERROR_CODES or (resp.status_code == 401 and not code):
            raise TokenException(
                code or "INVALID_SESSION_ID",
                message,
                resp.text,
                status_code=resp.status_code,
            )
        _logger.error("HTTP %s error for %s: %s %s", resp.status_code, resp.url, code, message)
        raise RemoteApiError(resp.status_code, code, message, resp.text)


def _encode_body(body: Any) -> Any:
    if body is None or isinstance(body, (str, bytes)):
        return body
    return json.dumps(body)


_SHAPE_TYPES: Dict[ResponseShape, type] = {
    ResponseShape.MAP: dict,
    ResponseShape.MAP_LIST: list,
    ResponseShape.LIST: list,
}


def _decode(resp: requests.Response, shape: ResponseShape) -> Any:
    if shape is ResponseShape.STRING:
        return resp.text or ""
    if resp.status_code == 204 or not resp.content:
        return None

    try:
        payload = resp.json()
    except ValueError as e:
        raise RemoteApiError(
            resp.status_code, "UNEXPECTED_RESPONSE", f"Response is not JSON: {e}", resp.text
        ) from e

    expected = _SHAPE_TYPES.get(shape)
    if expected is not None and not isinstance(payload, expected):
        raise _shape_error(resp, shape, payload)
    if shape is ResponseShape.MAP_LIST and not all(isinstance(p, dict) for p in payload):
        raise _shape_error(resp, shape, payload)
    return payload


def _shape_error(resp: requests.Response, shape: ResponseShape, payload: Any) -> RemoteApiError:
    return RemoteApiError(
        resp.status_code,
        "UNEXPECTED_RESPONSE",
        f"Expected {shape.value} response, got {type(payload).__name__}",
        resp.text,
    )


__all__ = [
    "RequestExecutor",
    "ResponseShape",
    "expand_uri",
    "is_absolute",
    "resolve_url",
    "parse_error_payload",
    "TOKEN_ERROR_CODES",
]
