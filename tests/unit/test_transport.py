from unittest.mock import MagicMock

import pytest
import requests
from conftest import make_response

from sfrest.exceptions import TransportError
from sfrest.transport import Transport


def test_send_passes_timeout_and_returns_error_statuses():
    session = MagicMock(spec=requests.Session)
    session.request.return_value = make_response(500, {"boom": True})
    transport = Transport(timeout=7, session=session)

    resp = transport.send("GET", "https://x/y", headers={"A": "b"})

    assert resp.status_code == 500
    session.request.assert_called_once_with(
        "GET", "https://x/y", headers={"A": "b"}, data=None, params=None, timeout=7
    )


def test_per_call_timeout_overrides_default():
    session = MagicMock(spec=requests.Session)
    transport = Transport(timeout=7, session=session)

    transport.send("GET", "https://x/y", timeout=1)

    assert session.request.call_args.kwargs["timeout"] == 1


def test_request_exception_becomes_transport_error():
    session = MagicMock(spec=requests.Session)
    session.request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(TransportError) as exc_info:
        Transport(session=session).send("GET", "https://x/y")

    assert isinstance(exc_info.value.__cause__, requests.ConnectionError)


def test_close_is_idempotent_and_blocks_further_sends():
    session = MagicMock(spec=requests.Session)
    transport = Transport(session=session)

    transport.close()
    transport.close()

    session.close.assert_called_once()
    assert transport.closed
    with pytest.raises(TransportError):
        transport.send("GET", "https://x/y")
