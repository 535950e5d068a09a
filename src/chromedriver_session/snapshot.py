"""Serve a captured screenshot plus a tiny viewer page on a throwaway local port."""

import mimetypes
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, Optional

from . import constants

import logging
logger = logging.getLogger(__name__)

SNAPSHOT_IMAGE_PATH = "/snap.png"

VIEWER_HTML = b"""<!doctype html>
<html>
  <head>
    <title>Selenium debug snapshot</title>
    <link rel="icon" href="data:;base64,iVBORw0KGgo=">
  </head>
  <body>
    <img src="snap.png" style="width:800px" alt="snap.png">
  </body>
</html>
"""


class SnapshotServer:
    """
    In-memory static file server for one screenshot.

    The server is released once the viewer has fetched the image, or when
    ``release()`` is called, whichever comes first.
    """

    def __init__(self, image: bytes, host: str = "127.0.0.1", port: Optional[int] = None):
        self.files: Dict[str, bytes] = {
            "/index.html": VIEWER_HTML,
            SNAPSHOT_IMAGE_PATH: image,
        }
        self.host = host
        self.port = port or 0
        self._released = threading.Event()
        self._httpd: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def url(self) -> str:
        return f"http://localhost:{self.port}/"

    @property
    def released(self) -> bool:
        return self._released.is_set()

    def release(self) -> None:
        self._released.set()

    def _make_handler(self):
        server = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:  # noqa: N802
                path = self.path.split("?", 1)[0]
                if path == "/":
                    path = "/index.html"
                body = server.files.get(path)
                if body is None:
                    self.send_error(404)
                    return
                ctype = mimetypes.guess_type(path)[0] or "application/octet-stream"
                self.send_response(200)
                self.send_header("Content-Type", ctype)
                self.send_header("Content-Length", str(len(body)))
                self.end_headers()
                self.wfile.write(body)
                if path == SNAPSHOT_IMAGE_PATH:
                    server.release()

            def log_message(self, format: str, *args) -> None:  # noqa: A002
                logger.debug("snapshot server: " + format, *args)

        return Handler

    def start(self) -> None:
        self._httpd = ThreadingHTTPServer((self.host, self.port), self._make_handler())
        # Port 0 binds an ephemeral port; read back the one the OS picked.
        self.port = self._httpd.server_address[1]
        self._thread = threading.Thread(target=self._httpd.serve_forever, daemon=True)
        self._thread.start()
        logger.info(f"serving {self.url}")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until released (or ``timeout``); returns whether it was released."""
        return self._released.wait(timeout)

    def stop(self) -> None:
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread is not None:
            self._thread.join()
        self._httpd = None
        self._thread = None

    def __enter__(self) -> "SnapshotServer":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()


def serve_snapshot(image: bytes, wait_timeout: Optional[float] = None) -> str:
    """
    Serve ``image`` and block until the viewer has loaded it.

    Args:
        image: PNG bytes
        wait_timeout: seconds to wait for the viewer; defaults to
            SNAPSHOT_WAIT_SECS, where 0 means wait indefinitely

    Returns:
        str: the URL the snapshot was served at
    """
    if wait_timeout is None:
        wait_timeout = constants.SNAPSHOT_WAIT_SECS
    with SnapshotServer(image) as srv:
        if not srv.wait(wait_timeout or None):
            logger.warning(f"snapshot at {srv.url} was not viewed within {wait_timeout:g}s")
        return srv.url


__all__ = [
    "SNAPSHOT_IMAGE_PATH",
    "VIEWER_HTML",
    "SnapshotServer",
    "serve_snapshot",
]
