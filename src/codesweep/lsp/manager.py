"""
Language server lifecycle.

JavaScript and TypeScript are both served by typescript-language-server, so
one server process per project root handles every file of a cleanup run.
"""

import os
import shutil
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from codesweep.lsp.client import LanguageServerClient

logger = structlog.get_logger()

SERVER_BINARY = "typescript-language-server"
SERVER_ARGS = ["--stdio"]

# Language ids accepted by get_client_async
SUPPORTED_LANGUAGES = frozenset({"typescript", "javascript", "typescriptreact", "javascriptreact"})


class LSPManager:
    """
    Locates typescript-language-server and owns the clients spawned from it.

    Lookup order: the explicit `server_path`, then the project's
    `node_modules/.bin`, then PATH. Not thread-safe; use from one event loop.
    """

    def __init__(
        self,
        server_path: Optional[str] = None,
        request_timeout: float = 30.0,
        server_args: Optional[List[str]] = None,
    ) -> None:
        self.server_path = server_path
        self.request_timeout = request_timeout
        self.server_args = list(server_args) if server_args is not None else list(SERVER_ARGS)
        self._clients: Dict[Tuple[str, str], LanguageServerClient] = {}
        self._failed: set[str] = set()

    def find_server(self, root_path: Optional[str] = None) -> Optional[str]:
        """Resolve the server executable, or None if it is not installed."""
        candidates: List[str] = []
        if self.server_path:
            candidates.append(self.server_path)
        else:
            if root_path:
                candidates.append(str(Path(root_path) / "node_modules" / ".bin" / SERVER_BINARY))
            candidates.append(SERVER_BINARY)

        for candidate in candidates:
            resolved = shutil.which(candidate)
            if resolved is None and os.path.isfile(candidate) and os.access(candidate, os.X_OK):
                resolved = candidate
            if resolved and resolved not in self._failed:
                logger.debug("lsp_server_found", binary=resolved)
                return resolved

        logger.info("lsp_server_missing", tried=candidates)
        return None

    def is_available(self, language: str, root_path: Optional[str] = None) -> bool:
        """Check if a server can be started for `language`."""
        return language.lower() in SUPPORTED_LANGUAGES and self.find_server(root_path) is not None

    async def get_client_async(
        self,
        language: str,
        root_path: str,
        workspace_folders: Optional[Sequence[str]] = None,
    ) -> Optional[LanguageServerClient]:
        """
        Get or spawn the initialized client serving `root_path`.

        A newly spawned server is initialized with `root_path` plus any other
        `workspace_folders` of the run.

        Returns:
            LanguageServerClient or None if the language is unsupported or the
            server cannot be started
        """
        language = language.lower()
        if language not in SUPPORTED_LANGUAGES:
            logger.debug("lsp_unsupported_language", language=language)
            return None

        binary = self.find_server(root_path)
        if binary is None:
            return None

        key = (binary, str(Path(root_path).absolute()))
        client = self._clients.get(key)
        if client is not None and client.is_running:
            return client

        client = LanguageServerClient(binary, self.server_args, cwd=root_path, request_timeout=self.request_timeout)
        try:
            await client.start_async()
            await client.initialize_async(root_path, workspace_folders)
            await client.send_notification_async("initialized", {})
        except FileNotFoundError:
            logger.warning("lsp_binary_not_found", binary=binary)
            self._failed.add(binary)
            return None
        except Exception as e:
            logger.error("lsp_spawn_failed", binary=binary, root=root_path, error=str(e))
            await client.shutdown_async()
            return None

        self._clients[key] = client
        logger.info("lsp_client_ready", binary=binary, root=root_path)
        return client

    async def shutdown_all_async(self) -> None:
        """Shut down every spawned server; errors are logged, never raised."""
        clients = list(self._clients.items())
        self._clients.clear()

        for (binary, root), client in clients:
            try:
                await client.shutdown_async()
            except Exception as e:
                logger.warning("lsp_shutdown_error", binary=binary, root=root, error=str(e))

        logger.info("lsp_all_clients_shutdown", count=len(clients))
