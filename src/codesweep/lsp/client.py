"""
JSON-RPC 2.0 client for a language server running over stdio.

Messages are framed with a `Content-Length` header. Besides requests and
notifications sent by the client, the server may send requests of its own
(typescript-language-server sends `workspace/applyEdit` while executing a
command); those are answered by handlers registered with `on_request`.
"""

import asyncio
import inspect
import json
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

import structlog

from codesweep.shared.domain.exceptions import AnalyzerError

logger = structlog.get_logger()

# JSON-RPC error codes
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603

SHUTDOWN_GRACE_SECONDS = 5.0

NotificationHandler = Callable[[Any], None]
RequestHandler = Callable[[Any], Union[Any, Awaitable[Any]]]

CLIENT_CAPABILITIES: Dict[str, Any] = {
    "textDocument": {
        "synchronization": {"dynamicRegistration": False, "willSave": False, "didSave": False},
        "publishDiagnostics": {"relatedInformation": False, "versionSupport": True},
        "codeAction": {
            "dynamicRegistration": False,
            "codeActionLiteralSupport": {
                "codeActionKind": {"valueSet": ["quickfix", "source", "source.organizeImports"]}
            },
            "dataSupport": True,
            "resolveSupport": {"properties": ["edit"]},
        },
    },
    "workspace": {
        "applyEdit": True,
        "workspaceEdit": {"documentChanges": True},
        "configuration": True,
        "workspaceFolders": True,
    },
}


def path_to_uri(file_path: Union[str, Path]) -> str:
    return Path(file_path).absolute().as_uri()


def encode_message(message: Dict[str, Any]) -> bytes:
    """Frame a JSON-RPC message for the wire."""
    body = json.dumps(message).encode("utf-8")
    return b"Content-Length: " + str(len(body)).encode("ascii") + b"\r\n\r\n" + body


class LanguageServerClient:
    """
    Talks to one language server subprocess.

    Responses are matched to pending requests by id. A request that gets no
    answer within `request_timeout` seconds, or that is pending when the
    server exits, fails with AnalyzerError.
    """

    def __init__(self, binary_path: str, args: List[str], cwd: str, request_timeout: float = 30.0):
        self.binary_path = binary_path
        self.args = list(args)
        self.cwd = cwd
        self.request_timeout = request_timeout
        self.process: Optional[asyncio.subprocess.Process] = None
        self.server_capabilities: Dict[str, Any] = {}

        self._next_id = 0
        self._pending_requests: Dict[int, asyncio.Future] = {}
        self._notification_handlers: Dict[str, List[NotificationHandler]] = {}
        self._request_handlers: Dict[str, RequestHandler] = {}
        self._reader_task: Optional[asyncio.Task] = None
        self._handler_tasks: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    # ============================================================
    # Lifecycle
    # ============================================================

    async def start_async(self) -> None:
        """
        Spawn the server process and start reading its output.

        The server gets its own session, so a terminal Ctrl-C reaches only
        the CLI, which then stops after the current file.

        Raises:
            FileNotFoundError: If the binary does not exist
        """
        command = [self.binary_path, *self.args]
        self.process = await asyncio.create_subprocess_exec(
            *command,
            cwd=self.cwd,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            start_new_session=True,
        )
        self._reader_task = asyncio.create_task(self._read_loop_async())
        logger.info("lsp_started", cmd=command, cwd=self.cwd, pid=self.process.pid)

    async def initialize_async(
        self,
        root_path: str,
        workspace_folders: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """
        Run the initialize handshake and remember the server capabilities.

        `root_path` is always the first workspace folder; further
        `workspace_folders` follow in order, duplicates dropped.
        """
        folders: Dict[str, str] = {}
        for folder in [root_path, *(workspace_folders or [])]:
            folders.setdefault(path_to_uri(folder), Path(folder).name)

        result = await self.send_request_async("initialize", {
            "processId": os.getpid(),
            "rootUri": path_to_uri(root_path),
            "workspaceFolders": [{"uri": uri, "name": name} for uri, name in folders.items()],
            "capabilities": CLIENT_CAPABILITIES,
            "initializationOptions": {},
        }) or {}
        self.server_capabilities = result.get("capabilities", {})
        return result

    async def shutdown_async(self) -> None:
        """Ask the server to exit, then make sure the process is gone."""
        process = self.process
        if process is None:
            return

        if self.is_running:
            try:
                await self.send_request_async("shutdown", None)
                await self.send_notification_async("exit", None)
            except (AnalyzerError, OSError) as e:
                logger.warning("lsp_shutdown_request_failed", error=str(e))

        if self._reader_task is not None:
            self._reader_task.cancel()
            await asyncio.gather(self._reader_task, return_exceptions=True)

        if process.returncode is None:
            process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=SHUTDOWN_GRACE_SECONDS)
            except asyncio.TimeoutError:
                logger.warning("lsp_kill_after_timeout", pid=process.pid)
                process.kill()
                await process.wait()

        logger.info("lsp_stopped", returncode=process.returncode)

    # ============================================================
    # Messaging
    # ============================================================

    async def send_request_async(self, method: str, params: Any) -> Any:
        """
        Send a request and wait for its result.

        Raises:
            AnalyzerError: On an error response, a timeout or a dead server
        """
        if self.process is None or self.process.stdin.is_closing():
            raise AnalyzerError("LSP process is not running", context={"method": method})

        self._next_id += 1
        request_id = self._next_id
        future = asyncio.get_running_loop().create_future()
        self._pending_requests[request_id] = future

        try:
            await self._write_async({"jsonrpc": "2.0", "id": request_id, "method": method, "params": params})
            return await asyncio.wait_for(future, timeout=self.request_timeout)
        except asyncio.TimeoutError:
            logger.error("lsp_request_timeout", method=method, id=request_id)
            raise AnalyzerError(f"LSP request timed out: {method}", context={"method": method})
        finally:
            self._pending_requests.pop(request_id, None)

    async def send_notification_async(self, method: str, params: Any) -> None:
        if self.process is None:
            return
        await self._write_async({"jsonrpc": "2.0", "method": method, "params": params})

    def on_notification(self, method: str, handler: NotificationHandler) -> None:
        """Register a handler for a notification method."""
        self._notification_handlers.setdefault(method, []).append(handler)

    def on_request(self, method: str, handler: RequestHandler) -> None:
        """Register the handler answering a server-to-client request (sync or async)."""
        self._request_handlers[method] = handler

    # ============================================================
    # Document synchronization
    # ============================================================

    async def open_document_async(self, file_path: str, language_id: str, content: str, version: int = 1) -> None:
        await self.send_notification_async("textDocument/didOpen", {
            "textDocument": {
                "uri": path_to_uri(file_path),
                "languageId": language_id,
                "version": version,
                "text": content,
            }
        })
        logger.debug("lsp_document_opened", file=file_path, language=language_id, version=version)

    async def change_document_async(self, file_path: str, content: str, version: int) -> None:
        """Replace the full text of an open document."""
        await self.send_notification_async("textDocument/didChange", {
            "textDocument": {"uri": path_to_uri(file_path), "version": version},
            "contentChanges": [{"text": content}],
        })

    async def close_document_async(self, file_path: str) -> None:
        await self.send_notification_async("textDocument/didClose", {
            "textDocument": {"uri": path_to_uri(file_path)}
        })

    # ============================================================
    # Code actions
    # ============================================================

    async def code_action_async(
        self,
        file_path: str,
        range_: Dict[str, Any],
        diagnostics: List[Dict[str, Any]],
        only: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Request code actions for a range.

        Returns:
            List of Command or CodeAction objects, in server order
        """
        context: Dict[str, Any] = {"diagnostics": diagnostics}
        if only:
            context["only"] = only

        actions = await self.send_request_async("textDocument/codeAction", {
            "textDocument": {"uri": path_to_uri(file_path)},
            "range": range_,
            "context": context,
        }) or []
        logger.debug("lsp_code_actions_found", file=file_path, count=len(actions), only=only)
        return actions

    @property
    def supports_code_action_resolve(self) -> bool:
        provider = self.server_capabilities.get("codeActionProvider")
        return isinstance(provider, dict) and bool(provider.get("resolveProvider"))

    async def resolve_code_action_async(self, action: Dict[str, Any]) -> Dict[str, Any]:
        """Fill in the edit of a lazily computed code action."""
        return await self.send_request_async("codeAction/resolve", action) or action

    async def execute_command_async(self, command: str, arguments: Optional[List[Any]] = None) -> Any:
        """Run a server command. Edits it produces arrive as workspace/applyEdit requests."""
        return await self.send_request_async("workspace/executeCommand", {
            "command": command,
            "arguments": arguments or [],
        })

    # ============================================================
    # Transport
    # ============================================================

    async def _write_async(self, message: Dict[str, Any]) -> None:
        self.process.stdin.write(encode_message(message))
        await self.process.stdin.drain()

    async def _read_message_async(self) -> Optional[Dict[str, Any]]:
        """Read one framed message; None once the server closes stdout."""
        headers: Dict[str, str] = {}
        while True:
            line = await self.process.stdout.readline()
            if not line:
                return None
            line = line.strip()
            if not line:
                break
            name, _, value = line.decode("ascii").partition(":")
            headers[name.strip().lower()] = value.strip()

        length = int(headers.get("content-length", 0))
        if length <= 0:
            return {}
        body = await self.process.stdout.readexactly(length)
        return json.loads(body.decode("utf-8"))

    async def _read_loop_async(self) -> None:
        try:
            while True:
                message = await self._read_message_async()
                if message is None:
                    logger.warning("lsp_process_eof")
                    break
                if message:
                    self._dispatch(message)
        except asyncio.CancelledError:
            pass
        except asyncio.IncompleteReadError:
            logger.warning("lsp_process_eof", partial=True)
        except (ValueError, OSError) as e:
            logger.error("lsp_read_loop_error", error=str(e))
        finally:
            self._fail_pending_requests()

    def _fail_pending_requests(self) -> None:
        for future in self._pending_requests.values():
            if not future.done():
                future.set_exception(AnalyzerError("LSP connection closed"))
        self._pending_requests.clear()

    def _dispatch(self, message: Dict[str, Any]) -> None:
        method = message.get("method")

        if method is None:
            self._resolve_response(message)
        elif "id" in message:
            task = asyncio.create_task(self._answer_request_async(message))
            self._handler_tasks.add(task)
            task.add_done_callback(self._handler_tasks.discard)
        else:
            for handler in list(self._notification_handlers.get(method, [])):
                try:
                    handler(message.get("params"))
                except Exception as e:
                    logger.error("lsp_notification_handler_error", method=method, error=str(e))

    def _resolve_response(self, message: Dict[str, Any]) -> None:
        request_id = message.get("id")
        future = self._pending_requests.pop(request_id, None)
        if future is None or future.done():
            logger.debug("lsp_unknown_response_id", id=request_id)
            return

        if "error" in message:
            future.set_exception(AnalyzerError(f"LSP Error: {message['error']}", context={"id": request_id}))
        else:
            future.set_result(message.get("result"))

    async def _answer_request_async(self, message: Dict[str, Any]) -> None:
        method = message["method"]
        handler = self._request_handlers.get(method)
        response: Dict[str, Any] = {"jsonrpc": "2.0", "id": message["id"]}

        if handler is None:
            logger.debug("lsp_server_request_unhandled", method=method)
            response["error"] = {"code": METHOD_NOT_FOUND, "message": f"Unhandled method {method}"}
        else:
            try:
                result = handler(message.get("params"))
                if inspect.isawaitable(result):
                    result = await result
                response["result"] = result
            except Exception as e:
                logger.error("lsp_request_handler_error", method=method, error=str(e))
                response["error"] = {"code": INTERNAL_ERROR, "message": str(e)}

        try:
            await self._write_async(response)
        except (OSError, RuntimeError) as e:
            logger.warning("lsp_response_write_failed", method=method, error=str(e))
