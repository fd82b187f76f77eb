"""Live preview for Quire.

``quire serve`` builds the site into ``.quire-preview/`` (never into the
production output), serves it over HTTP and, whenever a source file changes
and the rebuild succeeds, pushes a reload message to every open page over a
websocket. A failed rebuild is logged and the browser keeps showing the last
good preview.

Key classes:
- PreviewServer: Builds, serves, watches and reloads.
- _PreviewHandler: HTTP handler that adds the reload snippet to HTML and
  answers missing paths with the site's 404 page.
- _SourceChangeHandler: watchdog handler that triggers rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import build_site, staging_dir_for
from .config import CONFIG_FILENAME, load_config
from .errors import QuireError
from .selection import BuildMode

logger = logging.getLogger(__name__)

PREVIEW_DIRNAME = ".quire-preview"

RELOAD_SNIPPET = """
<script>
(() => {{
  const socket = new WebSocket(`ws://${{location.hostname}}:{port}`);
  socket.addEventListener("message", (event) => {{
    if (JSON.parse(event.data || "{{}}").type === "reload") location.reload();
  }});
}})();
</script>
"""


def inject_reload_snippet(html: str, snippet: str) -> bytes:
    """Insert snippet before the closing body tag, or append it."""
    head, sep, tail = html.rpartition("</body>")
    html = f"{head}{snippet}{sep}{tail}" if sep else html + snippet
    return html.encode("utf-8")


def source_fingerprint(sources: list[Path], root: Path) -> tuple:
    """Return ``(path, mtime_ns, size)`` for every file under sources.

    Used to skip rebuilds for events that did not change any file, such as
    an editor touching a directory.
    """
    entries = []
    for source in sources:
        if source.is_file():
            candidates = [source]
        elif source.is_dir():
            candidates = sorted(p for p in source.rglob("*") if p.is_file())
        else:
            continue
        for path in candidates:
            try:
                stat = path.stat()
            except OSError:
                continue
            entries.append((path.relative_to(root).as_posix(), stat.st_mtime_ns, stat.st_size))
    return tuple(entries)


class _PreviewHandler(SimpleHTTPRequestHandler):
    """Serves the preview directory.

    HTML responses get the reload snippet. Directories without an index and
    missing files get a 404, rendered from the site's 404.html when present.
    """

    snippet = RELOAD_SNIPPET.format(port=1314)

    def end_headers(self):
        self.send_header("Cache-Control", "no-store")
        super().end_headers()

    def log_message(self, format, *args):  # noqa: A002 - signature from BaseHTTPRequestHandler
        logger.debug("%s %s", self.address_string(), format % args)

    def send_head(self):
        target = Path(self.translate_path(self.path))
        if target.is_dir():
            target = target / "index.html"
        if not target.is_file():
            return self._not_found()
        if target.suffix != ".html":
            return super().send_head()
        self._respond_html(200, target.read_text(encoding="utf-8"))
        return None

    def _not_found(self):
        page = Path(self.directory) / "404.html"
        if not page.is_file():
            self.send_error(404, "File not found")
            return None
        self._respond_html(404, page.read_text(encoding="utf-8"))
        return None

    def _respond_html(self, status: int, html: str) -> None:
        body = inject_reload_snippet(html, self.snippet)
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class PreviewServer:
    """Builds, serves and live-reloads a preview of the site.

    Attributes:
        project_root: Project directory.
        include_drafts: Whether drafts are part of the preview.
        output_dir: Directory the preview is built into and served from.
        sources: Files and directories whose changes trigger a rebuild.
        http_port: HTTP port.
        ws_port: Websocket port for reload messages.
    """

    debounce_seconds = 0.05
    settle_seconds = 0.05

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
        include_drafts: bool = False,
    ):
        config = load_config(project_root)
        self.project_root = project_root
        self.include_drafts = include_drafts
        self.http_port = int(http_port or config.port)
        self.ws_port = self.http_port + 1 if ws_port is None else ws_port
        self.output_dir = project_root / PREVIEW_DIRNAME
        self.sources = [
            project_root / config.content_dir,
            project_root / config.static_dir,
            project_root / "themes",
            project_root / "layouts",
            project_root / CONFIG_FILENAME,
        ]
        production_dir = project_root / config.output_dir
        self._ignored_dirs = (
            self.output_dir,
            staging_dir_for(self.output_dir),
            production_dir,
            staging_dir_for(production_dir),
        )
        self.snippet = RELOAD_SNIPPET.format(port=self.ws_port)
        self.base_url = f"http://localhost:{self.http_port}"
        self._clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._observer: Observer | None = None
        self._busy = False
        self._last_attempt = float("-inf")
        self._fingerprint: tuple | None = None

    @property
    def mode(self) -> BuildMode:
        return BuildMode.from_flag(self.include_drafts)

    def build(self) -> None:
        build_site(
            self.project_root,
            self.mode,
            output_dir=self.output_dir,
            base_url=self.base_url,
        )

    def start(self) -> None:  # pragma: no cover - integration path
        self.build()
        self._fingerprint = source_fingerprint(self.sources, self.project_root)
        threading.Thread(target=self._serve_http, daemon=True).start()
        threading.Thread(target=self._serve_ws, daemon=True).start()
        self.watch()
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Stopping preview")
        finally:
            self.stop()

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    def watch(self) -> None:
        """Start watching sources; the project root is watched for quire.yaml."""
        handler = _SourceChangeHandler(self)
        observer = Observer()
        for source in self.sources:
            if source.is_dir():
                observer.schedule(handler, str(source), recursive=True)
        observer.schedule(handler, str(self.project_root), recursive=False)
        observer.start()
        self._observer = observer

    def ignores(self, path: Path) -> bool:
        """Return True for changes the preview should not react to."""
        if path.parent == self.project_root:
            return path.name != CONFIG_FILENAME
        return any(path.is_relative_to(ignored) for ignored in self._ignored_dirs)

    def rebuild(self) -> None:
        """Rebuild after a source change and tell open pages to reload.

        Ignored while a rebuild is running, within the debounce window, or
        when no watched file actually changed.
        """
        if self._busy or time.monotonic() - self._last_attempt < self.debounce_seconds:
            return
        fingerprint = source_fingerprint(self.sources, self.project_root)
        if fingerprint == self._fingerprint:
            return
        self._busy = True
        try:
            logger.info("Change detected, rebuilding")
            try:
                self.build()
            except QuireError as exc:
                logger.error("Rebuild failed, still serving last good preview: %s", exc)
                return
            self._fingerprint = fingerprint
            if self.settle_seconds:
                time.sleep(self.settle_seconds)
            self.notify_reload()
        finally:
            self._busy = False
            self._last_attempt = time.monotonic()

    def notify_reload(self) -> None:
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._send_to_clients(message), self._loop)

    async def _send_to_clients(self, message: str) -> None:
        closed = set()
        for client in self._clients:
            try:
                await client.send(message)
            except websockets.ConnectionClosed:
                closed.add(client)
        self._clients -= closed

    async def _register(self, websocket) -> None:
        self._clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._clients.discard(websocket)

    def _serve_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type("_Handler", (_PreviewHandler,), {"snippet": self.snippet})
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        with ThreadingHTTPServer(("", self.http_port), handler) as httpd:
            logger.info(
                "Serving preview at %s (drafts %s)",
                self.base_url,
                "included" if self.include_drafts else "hidden",
            )
            httpd.serve_forever()

    def _serve_ws(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._ws_main())
        except OSError as exc:
            logger.error("Reload websocket failed to start on port %s: %s", self.ws_port, exc)

    async def _ws_main(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._register, "0.0.0.0", self.ws_port):
            await asyncio.Future()


class _SourceChangeHandler(FileSystemEventHandler):
    def __init__(self, server: PreviewServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory or self.server.ignores(Path(event.src_path)):
            return
        self.server.rebuild()
