"""Token caches.

A storage holds at most one :class:`~sfrest.token.Token`. It is filled
lazily by :class:`~sfrest.executor.RequestExecutor` on the first request
and cleared whenever the remote side rejects the cached token.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from .token import Token

_logger = logging.getLogger(__name__)

DEFAULT_CACHE_FILE = Path.home() / ".sfrest_token.json"


@runtime_checkable
class TokenStorage(Protocol):
    def get_token(self) -> Optional[Token]: ...

    def save_token(self, token: Token) -> None: ...

    def clear_token(self) -> None: ...


class InMemoryTokenStorage:
    """Process-local single-slot cache."""

    def __init__(self, token: Optional[Token] = None) -> None:
        self._token = token
        self._lock = threading.Lock()

    def get_token(self) -> Optional[Token]:
        with self._lock:
            return self._token

    def save_token(self, token: Token) -> None:
        with self._lock:
            self._token = token

    def clear_token(self) -> None:
        with self._lock:
            self._token = None


class FileTokenStorage:
    """JSON file cache so a token survives between CLI invocations.

    Writes go to a private (0600) sibling temp file which is then renamed
    over the cache file, so readers see either the old or the new token.
    """

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        self.path = Path(path) if path else DEFAULT_CACHE_FILE
        self._lock = threading.Lock()

    def get_token(self) -> Optional[Token]:
        with self._lock:
            if not self.path.exists():
                return None
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
                return Token(**data)
            except (OSError, ValueError, TypeError) as e:
                _logger.debug("Ignoring unreadable token cache %s: %s", self.path, e)
                return None

    def save_token(self, token: Token) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # mkstemp creates the file 0600 under a name no other process uses
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=self.path.name + ".", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(token.to_dict(), fh, indent=2)
                os.replace(tmp, self.path)
            except Exception:
                Path(tmp).unlink(missing_ok=True)
                raise
            _logger.debug("Token cached in %s", self.path)

    def clear_token(self) -> None:
        with self._lock:
            try:
                self.path.unlink()
            except FileNotFoundError:
                return
            _logger.debug("Token cache %s removed", self.path)
