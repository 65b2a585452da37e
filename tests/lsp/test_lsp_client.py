"""
Tests for the JSON-RPC LanguageServerClient.

The subprocess is replaced by a fake exposing an in-memory stdout reader
and a stdin that records written frames.
"""

import asyncio
import json
import os
import shutil
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from codesweep.lsp.client import INTERNAL_ERROR, METHOD_NOT_FOUND, LanguageServerClient, path_to_uri
from codesweep.lsp.manager import LSPManager
from codesweep.shared.domain.exceptions import AnalyzerError


class FakeStdin:
    def __init__(self):
        self.buffer = b""

    def write(self, data):
        self.buffer += data

    async def drain(self):
        pass

    def is_closing(self):
        return False

    def messages(self):
        """Decode every Content-Length framed message written so far."""
        result = []
        data = self.buffer
        while data:
            header, _, rest = data.partition(b"\r\n\r\n")
            length = int(header.split(b":")[1])
            result.append(json.loads(rest[:length]))
            data = rest[length:]
        return result


class FakeProcess:
    def __init__(self):
        self.stdin = FakeStdin()
        self.stdout = asyncio.StreamReader()
        self.returncode = None
        self.pid = 4242

    def feed(self, message):
        body = json.dumps(message).encode("utf-8")
        self.stdout.feed_data(f"Content-Length: {len(body)}\r\n\r\n".encode("ascii") + body)


@pytest.fixture
def client():
    return LanguageServerClient("typescript-language-server", ["--stdio"], cwd="/tmp", request_timeout=1.0)


async def _attach(client):
    process = FakeProcess()
    client.process = process
    client._reader_task = asyncio.create_task(client._read_loop_async())
    return process


async def _wait_for_frames(process, count):
    for _ in range(100):
        if len(process.stdin.messages()) >= count:
            return process.stdin.messages()
        await asyncio.sleep(0.01)
    return process.stdin.messages()


class TestLanguageServerClient:
    """Test request/response matching and server-initiated messages."""

    def test_path_to_uri(self):
        assert path_to_uri("/work/a b.ts") == "file:///work/a%20b.ts"

    @pytest.mark.asyncio
    async def test_request_resolved_by_matching_response(self, client):
        process = await _attach(client)

        request = asyncio.create_task(client.send_request_async("textDocument/codeAction", {"x": 1}))
        sent = await _wait_for_frames(process, 1)
        process.feed({"jsonrpc": "2.0", "id": sent[0]["id"], "result": [{"title": "Organize Imports"}]})

        assert await request == [{"title": "Organize Imports"}]
        assert sent[0]["method"] == "textDocument/codeAction"
        client._reader_task.cancel()

    @pytest.mark.asyncio
    async def test_error_response_raises_analyzer_error(self, client):
        process = await _attach(client)

        request = asyncio.create_task(client.send_request_async("codeAction/resolve", {}))
        sent = await _wait_for_frames(process, 1)
        process.feed({"jsonrpc": "2.0", "id": sent[0]["id"], "error": {"code": -32603, "message": "boom"}})

        with pytest.raises(AnalyzerError, match="boom"):
            await request
        client._reader_task.cancel()

    @pytest.mark.asyncio
    async def test_request_timeout(self, client):
        await _attach(client)
        client.request_timeout = 0.05

        with pytest.raises(AnalyzerError, match="timed out"):
            await client.send_request_async("workspace/executeCommand", {})
        assert client._pending_requests == {}
        client._reader_task.cancel()

    @pytest.mark.asyncio
    async def test_request_without_process(self, client):
        with pytest.raises(AnalyzerError, match="not running"):
            await client.send_request_async("initialize", {})

    @pytest.mark.asyncio
    async def test_eof_fails_pending_requests(self, client):
        process = await _attach(client)

        request = asyncio.create_task(client.send_request_async("textDocument/codeAction", {}))
        await _wait_for_frames(process, 1)
        process.stdout.feed_eof()

        with pytest.raises(AnalyzerError, match="closed"):
            await request

    @pytest.mark.asyncio
    async def test_notifications_dispatched_to_handlers(self, client):
        process = await _attach(client)
        received = []
        client.on_notification("textDocument/publishDiagnostics", received.append)

        process.feed({"jsonrpc": "2.0", "method": "textDocument/publishDiagnostics", "params": {"uri": "file:///a.ts", "diagnostics": []}})
        for _ in range(100):
            if received:
                break
            await asyncio.sleep(0.01)

        assert received == [{"uri": "file:///a.ts", "diagnostics": []}]
        client._reader_task.cancel()

    @pytest.mark.asyncio
    async def test_server_request_answered_by_async_handler(self, client):
        process = await _attach(client)

        async def apply_edit(params):
            return {"applied": True}

        client.on_request("workspace/applyEdit", apply_edit)
        process.feed({"jsonrpc": "2.0", "id": 99, "method": "workspace/applyEdit", "params": {"edit": {}}})

        sent = await _wait_for_frames(process, 1)
        assert sent == [{"jsonrpc": "2.0", "id": 99, "result": {"applied": True}}]
        client._reader_task.cancel()

    @pytest.mark.asyncio
    async def test_unhandled_server_request_gets_method_not_found(self, client):
        process = await _attach(client)

        process.feed({"jsonrpc": "2.0", "id": "abc", "method": "window/showDocument", "params": {}})

        sent = await _wait_for_frames(process, 1)
        assert sent[0]["id"] == "abc"
        assert sent[0]["error"]["code"] == METHOD_NOT_FOUND
        client._reader_task.cancel()

    @pytest.mark.asyncio
    async def test_failing_handler_gets_internal_error(self, client):
        process = await _attach(client)

        def configuration(params):
            raise ValueError("bad params")

        client.on_request("workspace/configuration", configuration)
        process.feed({"jsonrpc": "2.0", "id": 5, "method": "workspace/configuration", "params": {}})

        sent = await _wait_for_frames(process, 1)
        assert sent[0]["error"] == {"code": INTERNAL_ERROR, "message": "bad params"}
        client._reader_task.cancel()

    @pytest.mark.asyncio
    async def test_code_action_request_shape(self, client):
        captured = {}

        async def fake_send(method, params):
            captured["method"] = method
            captured["params"] = params
            return None

        client.send_request_async = fake_send
        actions = await client.code_action_async(
            "/work/a.ts",
            {"start": {"line": 0, "character": 0}, "end": {"line": 3, "character": 0}},
            [],
            only=["source.organizeImports"],
        )

        assert actions == []
        assert captured["method"] == "textDocument/codeAction"
        assert captured["params"]["textDocument"] == {"uri": "file:///work/a.ts"}
        assert captured["params"]["context"] == {"diagnostics": [], "only": ["source.organizeImports"]}

    def test_resolve_support_read_from_capabilities(self, client):
        assert client.supports_code_action_resolve is False

        client.server_capabilities = {"codeActionProvider": {"resolveProvider": True}}
        assert client.supports_code_action_resolve is True

        client.server_capabilities = {"codeActionProvider": True}
        assert client.supports_code_action_resolve is False

    @pytest.mark.asyncio
    async def test_initialize_lists_every_workspace_folder(self, client):
        captured = {}

        async def fake_send(method, params):
            captured["params"] = params
            return {"capabilities": {"codeActionProvider": {"resolveProvider": True}}}

        client.send_request_async = fake_send
        await client.initialize_async("/work/app", ["/work/app", "/work/lib"])

        params = captured["params"]
        assert params["rootUri"] == "file:///work/app"
        assert params["workspaceFolders"] == [
            {"uri": "file:///work/app", "name": "app"},
            {"uri": "file:///work/lib", "name": "lib"},
        ]
        assert client.supports_code_action_resolve is True

    @pytest.mark.asyncio
    async def test_server_started_in_its_own_session(self, client):
        process = FakeProcess()
        with patch("codesweep.lsp.client.asyncio.create_subprocess_exec", AsyncMock(return_value=process)) as spawn:
            await client.start_async()

        spawn.assert_awaited_once()
        assert spawn.call_args.args == ("typescript-language-server", "--stdio")
        assert spawn.call_args.kwargs["start_new_session"] is True
        client._reader_task.cancel()

    @pytest.mark.asyncio
    @pytest.mark.skipif(not hasattr(os, "getpgid") or shutil.which("sleep") is None, reason="POSIX process groups")
    async def test_terminal_interrupt_does_not_reach_server(self, tmp_path):
        client = LanguageServerClient(shutil.which("sleep"), ["30"], cwd=str(tmp_path))
        await client.start_async()
        try:
            assert os.getpgid(client.process.pid) != os.getpgid(0)
        finally:
            client.process.kill()
            await client.process.wait()
            client._reader_task.cancel()


def _ready_client():
    instance = MagicMock()
    instance.is_running = True
    instance.start_async = AsyncMock(return_value=None)
    instance.initialize_async = AsyncMock(return_value={})
    instance.send_notification_async = AsyncMock(return_value=None)
    instance.shutdown_async = AsyncMock(return_value=None)
    return instance


class TestLSPManager:
    """Test server lookup and client lifecycle."""

    def test_explicit_server_path_wins(self, tmp_path):
        server = tmp_path / "bin" / "tsls"
        server.parent.mkdir()
        server.write_text("#!/bin/sh\n")
        server.chmod(0o755)

        with patch("codesweep.lsp.manager.shutil.which", return_value=None):
            manager = LSPManager(server_path=str(server))
            assert manager.find_server() == str(server)
            assert manager.is_available("JavaScript")

    def test_project_local_install_preferred_over_path(self, tmp_path):
        local = tmp_path / "node_modules" / ".bin" / "typescript-language-server"

        def which(name):
            return name if name == str(local) else "/usr/bin/typescript-language-server"

        with patch("codesweep.lsp.manager.shutil.which", side_effect=which):
            assert LSPManager().find_server(str(tmp_path)) == str(local)

    def test_missing_server(self):
        with patch("codesweep.lsp.manager.shutil.which", return_value=None):
            manager = LSPManager()

            assert manager.find_server() is None
            assert not manager.is_available("typescript")

    @pytest.mark.asyncio
    async def test_unsupported_language_returns_none(self):
        with patch("codesweep.lsp.manager.LanguageServerClient") as client_cls:
            assert await LSPManager().get_client_async("python", "/work") is None

        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_binary_that_cannot_start_is_not_retried(self):
        with patch("codesweep.lsp.manager.shutil.which", return_value="/usr/bin/typescript-language-server"), \
                patch("codesweep.lsp.manager.LanguageServerClient") as client_cls:
            client_cls.return_value.start_async = AsyncMock(side_effect=FileNotFoundError("missing"))
            manager = LSPManager()

            assert await manager.get_client_async("typescript", "/work") is None
            assert manager.find_server("/work") is None

    @pytest.mark.asyncio
    async def test_initialize_failure_shuts_client_down(self):
        with patch("codesweep.lsp.manager.shutil.which", return_value="/usr/bin/typescript-language-server"), \
                patch("codesweep.lsp.manager.LanguageServerClient") as client_cls:
            instance = _ready_client()
            instance.initialize_async.side_effect = AnalyzerError("LSP request timed out: initialize")
            client_cls.return_value = instance

            assert await LSPManager().get_client_async("typescript", "/work") is None

        instance.shutdown_async.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_typescript_and_javascript_share_one_client(self):
        with patch("codesweep.lsp.manager.shutil.which", return_value="/usr/bin/typescript-language-server"), \
                patch("codesweep.lsp.manager.LanguageServerClient") as client_cls:
            instance = _ready_client()
            client_cls.return_value = instance
            manager = LSPManager(request_timeout=5.0)

            first = await manager.get_client_async("typescript", "/work")
            second = await manager.get_client_async("javascriptreact", "/work")
            await manager.shutdown_all_async()

        assert first is second is instance
        client_cls.assert_called_once_with(
            "/usr/bin/typescript-language-server", ["--stdio"], cwd="/work", request_timeout=5.0
        )
        instance.initialize_async.assert_awaited_once_with("/work", None)
        instance.send_notification_async.assert_awaited_once_with("initialized", {})
        instance.shutdown_async.assert_awaited_once()
