"""
HTTP remote store tests, with the requests session mocked out.
"""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock

import pytest
import requests

from csop.capabilities.remote_store import HttpRemoteStore, RemoteConfig
from csop.core.errors import CapabilityError


def run(coro):
    return asyncio.run(coro)


def make_store(rows=None, error=None):
    session = MagicMock(spec=requests.Session)
    response = MagicMock()
    response.json.return_value = {"rows": rows or []}
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = response
    config = RemoteConfig(url="https://db.example.test", auth_token="secret", timeout_s=5.0)
    return HttpRemoteStore(config, session=session), session


class TestRemoteConfig:

    def test_from_dict(self):
        cfg = RemoteConfig.from_dict({"url": "https://db.example.test/", "auth_token": "t", "timeout_s": 3})
        assert cfg == RemoteConfig(url="https://db.example.test", auth_token="t", timeout_s=3.0)

    @pytest.mark.parametrize("raw", [{}, {"url": "https://x"}, {"auth_token": "t"}, "not-a-dict"])
    def test_incomplete(self, raw):
        with pytest.raises(ValueError):
            RemoteConfig.from_dict(raw)


class TestHttpRemoteStore:

    def test_put_posts_statement(self):
        store, session = make_store()
        run(store.put("k", '{"a":1}'))

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "https://db.example.test/execute"
        assert kwargs["json"] == {
            "sql": "INSERT OR REPLACE INTO storage (key, data) VALUES (?, ?)",
            "args": ["k", '{"a":1}'],
        }
        assert kwargs["headers"] == {"Authorization": "Bearer secret"}
        assert kwargs["timeout"] == 5.0

    def test_get_hit(self):
        store, _ = make_store(rows=[['{"a":1}']])
        assert run(store.get("k")) == '{"a":1}'

    def test_get_miss(self):
        store, _ = make_store(rows=[])
        assert run(store.get("k")) is None

    def test_delete(self):
        store, session = make_store()
        run(store.delete("k"))
        assert session.post.call_args[1]["json"]["sql"] == "DELETE FROM storage WHERE key = ?"

    def test_transport_error(self):
        store, _ = make_store(error=requests.ConnectionError("refused"))
        with pytest.raises(CapabilityError) as exc_info:
            run(store.get("k"))
        assert exc_info.value.code == "REMOTE_STORE_ERROR"

    def test_http_error_status(self):
        store, session = make_store()
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError("500")
        with pytest.raises(CapabilityError) as exc_info:
            run(store.put("k", "1"))
        assert exc_info.value.code == "REMOTE_STORE_ERROR"
