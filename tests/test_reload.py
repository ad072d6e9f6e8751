"""Tests for live-reload helpers."""

from __future__ import annotations

import socket
import urllib.request
from pathlib import Path

import pytest

from mdbuild.core.errors import BuildError
from mdbuild.reload.notifier import (
    LiveReloadNotifier,
    NullNotifier,
    inject_script,
    script_tag,
)

TAG = script_tag("127.0.0.1", 35729)


def test_script_tag() -> None:
    assert TAG == '<script src="http://127.0.0.1:35729/livereload.js?port=35729"></script>'


def test_inject_before_closing_body() -> None:
    html = "<html><body><p>x</p></body></html>"
    assert inject_script(html, TAG) == f"<html><body><p>x</p>{TAG}\n</body></html>"


def test_inject_uses_last_body_tag_case_insensitively() -> None:
    html = "<pre>&lt;/body&gt;</pre></BODY></html>"
    result = inject_script(html, TAG)
    assert result.endswith(f"{TAG}\n</BODY></html>")


def test_inject_appends_without_body() -> None:
    assert inject_script("<p>fragment</p>", TAG) == f"<p>fragment</p>{TAG}\n"


def test_null_notifier_accepts_anything() -> None:
    notifier = NullNotifier()
    notifier.start()
    notifier.notify([Path("a.html")])
    notifier.stop()


def test_notify_before_start_is_a_no_op(tmp_path: Path) -> None:
    notifier = LiveReloadNotifier(tmp_path, port=35999)
    notifier.notify([tmp_path / "a.html"])
    notifier.stop()
    assert notifier.url == "http://127.0.0.1:35999/"


def free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def fetch(url: str) -> tuple[int, str]:
    opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))
    with opener.open(url, timeout=5) as response:
        return response.status, response.read().decode("utf-8")


@pytest.mark.integration
class TestLiveReloadServer:
    def test_serves_notifies_and_stops(self, tmp_path: Path) -> None:
        (tmp_path / "a.html").write_text("<html><body>hello</body></html>", encoding="utf-8")
        notifier = LiveReloadNotifier(tmp_path, port=free_port())
        notifier.start()
        thread = notifier._thread
        try:
            status, body = fetch(f"{notifier.url}a.html")
            assert status == 200
            assert "hello" in body

            status, _ = fetch(f"{notifier.url}livereload.js")
            assert status == 200

            notifier.notify([tmp_path / "a.html"])
        finally:
            notifier.stop()

        assert thread is not None
        assert not thread.is_alive()
        # A stopped notifier ignores further notifications
        notifier.notify([tmp_path / "a.html"])

    def test_start_fails_when_port_is_taken(self, tmp_path: Path) -> None:
        with socket.socket() as sock:
            sock.bind(("127.0.0.1", 0))
            sock.listen()
            notifier = LiveReloadNotifier(tmp_path, port=sock.getsockname()[1])

            with pytest.raises(BuildError, match="Cannot start live reload server"):
                notifier.start()

        notifier.stop()
