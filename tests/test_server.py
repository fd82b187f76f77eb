import asyncio
import logging

import websockets
from conftest import write_post

from quire.errors import RenderFailure
from quire.selection import BuildMode
from quire.server import (
    PREVIEW_DIRNAME,
    PreviewServer,
    _PreviewHandler,
    _SourceChangeHandler,
    inject_reload_snippet,
    source_fingerprint,
)


class DummyEvent:
    def __init__(self, path, is_directory=False):
        self.src_path = path
        self.is_directory = is_directory


def test_preview_builds_into_its_own_directory(monkeypatch, project):
    calls = {}

    def fake_build(root, mode, output_dir=None, base_url=None):
        calls.update(root=root, mode=mode, output_dir=output_dir, base_url=base_url)

    monkeypatch.setattr("quire.server.build_site", fake_build)
    server = PreviewServer(project, http_port=5055, include_drafts=True)
    server.build()

    assert calls == {
        "root": project,
        "mode": BuildMode.DRAFT_PREVIEW,
        "output_dir": project / PREVIEW_DIRNAME,
        "base_url": "http://localhost:5055",
    }


def test_port_defaults_and_override(project):
    server = PreviewServer(project)
    assert server.http_port == 1313
    assert server.ws_port == 1314
    assert server.mode is BuildMode.PRODUCTION

    explicit = PreviewServer(project, http_port=5055, ws_port=6000)
    assert explicit.ws_port == 6000
    assert ":6000" in explicit.snippet


def test_ignores_output_and_unrelated_root_files(project):
    server = PreviewServer(project)

    assert server.ignores(project / "notes.txt")
    assert server.ignores(project / PREVIEW_DIRNAME / "index.html")
    assert server.ignores(project / ".quire-preview.staging" / "index.html")
    assert server.ignores(project / "public" / "index.html")
    assert server.ignores(project / ".public.staging" / "index.html")
    assert not server.ignores(project / "quire.yaml")
    assert not server.ignores(project / "content" / "posts" / "a.md")
    assert not server.ignores(project / "themes" / "mine" / "layouts" / "single.html.jinja")


def test_change_handler_triggers_rebuild(project):
    server = PreviewServer(project)
    called = []
    server.rebuild = lambda: called.append(True)
    handler = _SourceChangeHandler(server)

    handler.on_any_event(DummyEvent(str(project / "public" / "index.html")))
    handler.on_any_event(DummyEvent(str(project / "content"), is_directory=True))
    assert called == []

    handler.on_any_event(DummyEvent(str(project / "content" / "posts" / "a.md")))
    assert called == [True]


def test_rebuild_reloads_once_per_change(monkeypatch, project):
    write_post(project, "posts/a.md")
    server = PreviewServer(project)
    server.settle_seconds = 0
    server.debounce_seconds = 0
    calls = []
    monkeypatch.setattr("quire.server.build_site", lambda *a, **k: calls.append("built"))
    server.notify_reload = lambda: calls.append("reloaded")

    server.rebuild()
    server.rebuild()  # nothing changed
    server._busy = True
    write_post(project, "posts/b.md")
    server.rebuild()  # skipped while a rebuild is running
    server._busy = False
    server.rebuild()

    assert calls == ["built", "reloaded", "built", "reloaded"]


def test_failed_rebuild_keeps_last_preview(monkeypatch, project, caplog):
    write_post(project, "posts/a.md")
    server = PreviewServer(project)
    server.settle_seconds = 0
    reloads = []
    server.notify_reload = lambda: reloads.append(True)

    def failing_build(*args, **kwargs):
        raise RenderFailure("Undefined variable: nope", project / "content" / "posts" / "a.md")

    monkeypatch.setattr("quire.server.build_site", failing_build)
    with caplog.at_level(logging.ERROR, logger="quire"):
        server.rebuild()

    assert reloads == []
    assert server._busy is False
    assert server._fingerprint is None
    assert "still serving last good preview" in caplog.text


def test_source_fingerprint(project):
    server = PreviewServer(project)
    fingerprint = source_fingerprint(server.sources, project)
    assert [entry[0] for entry in fingerprint] == ["quire.yaml"]

    write_post(project, "posts/a.md")
    paths = [entry[0] for entry in source_fingerprint(server.sources, project)]
    assert "content/posts/a.md" in paths


def test_inject_reload_snippet():
    assert inject_reload_snippet("<body>x</body>", "<s/>") == b"<body>x<s/></body>"
    assert inject_reload_snippet("plain", "<s/>") == b"plain<s/>"


def test_send_to_clients_drops_closed_clients(project):
    server = PreviewServer(project)

    class GoodWS:
        def __init__(self):
            self.messages = []

        async def send(self, msg):
            self.messages.append(msg)

    class ClosedWS:
        async def send(self, msg):
            raise websockets.ConnectionClosed(None, None)

    good = GoodWS()
    closed = ClosedWS()
    server._clients = {good, closed}
    asyncio.run(server._send_to_clients("hello"))
    assert good.messages == ["hello"]
    assert server._clients == {good}


def test_notify_reload_uses_server_loop(monkeypatch, project):
    server = PreviewServer(project)
    called = {}

    def fake_runner(coro, loop):
        called["loop"] = loop
        new_loop = asyncio.new_event_loop()
        try:
            return new_loop.run_until_complete(coro)
        finally:
            new_loop.close()

    monkeypatch.setattr("quire.server.asyncio.run_coroutine_threadsafe", fake_runner)
    server.notify_reload()
    assert called["loop"] is server._loop


def test_ws_start_failure_is_logged(monkeypatch, project, caplog):
    server = PreviewServer(project, http_port=5055, ws_port=5057)

    async def fake_main():
        raise OSError("bind error")

    monkeypatch.setattr(server, "_ws_main", fake_main)
    with caplog.at_level(logging.ERROR, logger="quire"):
        server._serve_ws()
    assert "failed to start" in caplog.text


def _make_handler(tmp_path, path):
    handler = _PreviewHandler.__new__(_PreviewHandler)
    handler.path = path
    handler.directory = str(tmp_path)
    handler.command = "GET"
    handler.request_version = "HTTP/1.1"
    handler.server_version = ""
    handler.sys_version = ""
    handler.wfile = tmp_path.joinpath("out.bin").open("wb")
    handler._headers_buffer = []
    handler.statuses = []

    def send_header(key, value):
        handler._headers_buffer.append(f"{key}: {value}\r\n".encode())

    handler.send_header = send_header
    handler.send_response = lambda code, message=None: handler.statuses.append(code)
    return handler


def test_preview_handler_injects_snippet(tmp_path):
    (tmp_path / "index.html").write_text("<html><body>Hello</body></html>", encoding="utf-8")
    handler = _make_handler(tmp_path, "/index.html")

    result = _PreviewHandler.send_head(handler)
    handler.wfile.close()

    output = tmp_path.joinpath("out.bin").read_bytes()
    assert result is None
    assert handler.statuses == [200]
    assert b"location.reload()" in output
    assert output.index(b"<script>") < output.index(b"</body>")


def test_preview_handler_serves_404_page(tmp_path):
    (tmp_path / "404.html").write_text("<body>Lost</body>", encoding="utf-8")
    handler = _make_handler(tmp_path, "/missing/")

    _PreviewHandler.send_head(handler)
    handler.wfile.close()

    output = tmp_path.joinpath("out.bin").read_bytes()
    assert handler.statuses == [404]
    assert b"Lost" in output


def test_stop_joins_observer(project):
    server = PreviewServer(project)
    server._observer = None
    server.stop()

    class DummyObserver:
        def __init__(self):
            self.calls = []

        def stop(self):
            self.calls.append("stop")

        def join(self):
            self.calls.append("join")

    server._observer = DummyObserver()
    server.stop()
    assert server._observer.calls == ["stop", "join"]
