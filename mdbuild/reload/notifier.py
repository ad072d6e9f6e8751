"""Browser reload notification backed by the livereload server."""

from __future__ import annotations

import asyncio
import logging
import re
import threading
from pathlib import Path
from typing import Iterable, Protocol

from livereload import Server
from livereload.handlers import LiveReloadHandler
from tornado.ioloop import IOLoop

from ..core.errors import BuildError

logger = logging.getLogger(__name__)

_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)


class Notifier(Protocol):
    def start(self) -> None: ...

    def notify(self, paths: Iterable[Path]) -> None: ...

    def stop(self) -> None: ...


class NullNotifier:
    """Notifier used when live reload is disabled."""

    def start(self) -> None:
        pass

    def notify(self, paths: Iterable[Path]) -> None:
        pass

    def stop(self) -> None:
        pass


def script_tag(host: str, port: int) -> str:
    """Return the live-reload client script tag for a server."""
    return f'<script src="http://{host}:{port}/livereload.js?port={port}"></script>'


def inject_script(html: str, tag: str) -> str:
    """Insert ``tag`` before the closing body tag, or append it."""
    matches = list(_BODY_CLOSE.finditer(html))
    if not matches:
        return f"{html}{tag}\n"
    last = matches[-1]
    return f"{html[: last.start()]}{tag}\n{html[last.start():]}"


class LiveReloadNotifier:
    """Serve the output directory and push reloads to connected browsers.

    The server runs its own tornado loop on a daemon thread; ``notify`` only
    schedules a reload on that loop and never blocks the caller.
    """

    def __init__(self, root: Path, host: str = "127.0.0.1", port: int = 35729) -> None:
        self.root = root
        self.host = host
        self.port = port
        self._server = Server()
        # Without a task livereload watches the cwd; reloads come from notify()
        self._server.watch(str(root / ".mdbuild-no-watch"), delay="forever")
        self._loop: IOLoop | None = None
        self._ready = threading.Event()
        self._error: Exception | None = None
        self._thread: threading.Thread | None = None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}/"

    def _listening(self, loop: IOLoop) -> None:
        self._loop = loop
        self._ready.set()

    def _serve(self) -> None:
        asyncio.set_event_loop(asyncio.new_event_loop())
        loop = IOLoop.current()
        # Runs once the loop starts, which is after the port is bound
        loop.add_callback(self._listening, loop)
        try:
            self._server.serve(
                port=self.port,
                host=self.host,
                root=str(self.root),
                debug=False,
                open_url_delay=None,
            )
        except Exception as e:
            self._error = e
            self._ready.set()
        finally:
            loop.close(all_fds=True)

    def start(self) -> None:
        """Start serving in the background.

        Raises:
            BuildError: if the server cannot listen on its host and port
        """
        if self._thread is not None:
            return
        self._error = None
        self._ready.clear()
        self._thread = threading.Thread(
            target=self._serve, name="mdbuild-livereload", daemon=True
        )
        self._thread.start()
        if not self._ready.wait(timeout=5):
            raise BuildError(f"Live reload server did not start on {self.host}:{self.port}")
        if self._error is not None:
            self._thread.join(timeout=5)
            self._thread = None
            raise BuildError(
                f"Cannot start live reload server on {self.host}:{self.port}: {self._error}"
            ) from self._error
        logger.info(f"Serving {self.root} with live reload at {self.url}")

    def notify(self, paths: Iterable[Path]) -> None:
        if self._loop is None:
            logger.debug("Live reload server not running, skipping notification")
            return
        names = sorted({path.name for path in paths})
        logger.debug(f"Reloading browsers for {', '.join(names) or '*'}")
        self._loop.add_callback(LiveReloadHandler.reload_waiters)

    def stop(self) -> None:
        loop = self._loop
        if loop is None:
            return
        self._loop = None
        loop.add_callback(loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
