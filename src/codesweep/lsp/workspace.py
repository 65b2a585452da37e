"""
Language server backed analyzer.

Implements every capability the cleanup engine consumes (diagnostics, fixes,
edit application and document storage) on top of one language server
session, keeping the server's view of each file in sync with the in-memory
documents.
"""

import asyncio
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Sequence, Set

import structlog

from codesweep.cleaning.domain.models import (
    CandidateFix,
    CodeActionKind,
    Diagnostic,
    FileHandle,
    Range,
    WorkspaceEdit,
)
from codesweep.cleaning.infrastructure.documents import FileDocumentStore, TextDocument
from codesweep.lsp.client import LanguageServerClient
from codesweep.lsp.protocol import (
    candidate_fix_from_lsp,
    diagnostic_from_lsp,
    language_id_for,
    range_from_lsp,
    range_to_lsp,
    ranges_overlap,
    workspace_edit_from_lsp,
)

logger = structlog.get_logger()


class LanguageServerWorkspace:
    """
    Analyzer adapter over a LanguageServerClient.

    Diagnostics are cached from textDocument/publishDiagnostics, so
    get_diagnostics() returns whatever the server last published. Opening a
    file, or editing it, waits up to `settle_seconds` for a fresh publish.

    Only `max_open_documents` files stay open in the server; the oldest
    saved ones are closed first.
    """

    def __init__(
        self,
        client: LanguageServerClient,
        documents: Optional[FileDocumentStore] = None,
        settle_seconds: float = 3.0,
        max_open_documents: int = 16,
    ) -> None:
        self.client = client
        self.documents = documents or FileDocumentStore()
        self.settle_seconds = settle_seconds
        self.max_open_documents = max(1, max_open_documents)

        self._diagnostics: Dict[FileHandle, List[Dict[str, Any]]] = {}
        self._published: Dict[FileHandle, asyncio.Event] = {}
        self._open: "OrderedDict[FileHandle, None]" = OrderedDict()
        self._command_changes: Optional[Set[FileHandle]] = None

        client.on_notification("textDocument/publishDiagnostics", self._on_publish_diagnostics)
        client.on_request("workspace/applyEdit", self._on_apply_edit_request_async)
        client.on_request("workspace/configuration", self._on_configuration_request)
        client.on_request("window/workDoneProgress/create", lambda params: None)
        client.on_request("client/registerCapability", lambda params: None)

    # ============================================================
    # DocumentStore
    # ============================================================

    async def open_async(self, file: FileHandle) -> TextDocument:
        document = await self.documents.open_async(file)

        if file in self._open:
            self._open.move_to_end(file)
            return document

        await self._close_excess_async()

        self._published_event(file).clear()
        await self.client.open_document_async(str(file), language_id_for(file), document.text, document.version)
        self._open[file] = None
        await self._wait_for_diagnostics_async(file)
        return document

    async def save_async(self, document: TextDocument) -> None:
        await self.documents.save_async(document)

    async def close_all_async(self) -> None:
        """Close every document opened in the server."""
        for file in list(self._open):
            await self._close_async(file)

    # ============================================================
    # DiagnosticsSource
    # ============================================================

    def get_diagnostics(self, file: FileHandle) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        for raw in self._diagnostics.get(file, []):
            try:
                diagnostics.append(diagnostic_from_lsp(raw))
            except (TypeError, ValueError, AttributeError) as e:
                logger.warning("lsp_diagnostic_conversion_failed", file=str(file), error=str(e))
        return diagnostics

    # ============================================================
    # FixProvider
    # ============================================================

    async def get_candidate_fixes_async(self, file: FileHandle, range: Range, kind: str) -> List[CandidateFix]:
        await self.open_async(file)

        context_diagnostics: List[Dict[str, Any]] = []
        if kind == CodeActionKind.QUICK_FIX:
            context_diagnostics = [
                raw for raw in self._diagnostics.get(file, [])
                if ranges_overlap(range_from_lsp(raw.get("range", {})), range)
            ]

        actions = await self.client.code_action_async(
            str(file), range_to_lsp(range), context_diagnostics, only=[kind]
        )

        fixes: List[CandidateFix] = []
        for action in actions:
            if self._needs_resolve(action):
                action = await self.client.resolve_code_action_async(action)
            fixes.append(candidate_fix_from_lsp(action))
        return fixes

    def _needs_resolve(self, action: Dict[str, Any]) -> bool:
        return (
            "edit" not in action
            and "command" not in action
            and "data" in action
            and self.client.supports_code_action_resolve
        )

    # ============================================================
    # EditApplier
    # ============================================================

    async def apply_edit_async(self, edit: WorkspaceEdit) -> bool:
        changed = await self._apply_workspace_edit_async(edit)
        for file in changed:
            await self._wait_for_diagnostics_async(file)
        return True

    async def invoke_command_async(self, name: str, arguments: Sequence[Any]) -> Any:
        """
        Execute a server command.

        Edits the command produces come back as workspace/applyEdit requests
        while it runs; diagnostics of the touched files are refreshed after.
        """
        self._command_changes = set()
        try:
            result = await self.client.execute_command_async(name, list(arguments))
            changed = self._command_changes
        finally:
            self._command_changes = None

        for file in changed:
            await self._wait_for_diagnostics_async(file)
        return result

    async def _apply_workspace_edit_async(self, edit: WorkspaceEdit) -> List[FileHandle]:
        changed: List[FileHandle] = []
        for file, edits in edit.changes.items():
            document = await self.open_async(file)
            if not document.apply_edits(edits):
                continue

            self._published_event(file).clear()
            await self.client.change_document_async(str(file), document.text, document.version)
            changed.append(file)
            logger.debug("lsp_edit_applied", file=str(file), edits=len(edits), version=document.version)

        if self._command_changes is not None:
            self._command_changes.update(changed)
        return changed

    # ============================================================
    # Server notifications and requests
    # ============================================================

    def _on_publish_diagnostics(self, params: Optional[Dict[str, Any]]) -> None:
        if not params or "uri" not in params:
            return
        file = FileHandle.from_uri(params["uri"])

        version = params.get("version")
        document = self.documents.get(file)
        if isinstance(version, int) and document is not None and version < document.version:
            # Published for text that has since been edited
            logger.debug("lsp_stale_diagnostics_ignored", file=str(file), version=version, current=document.version)
            return

        self._diagnostics[file] = list(params.get("diagnostics") or [])
        self._published_event(file).set()

    async def _on_apply_edit_request_async(self, params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        try:
            edit = workspace_edit_from_lsp((params or {}).get("edit") or {})
            await self._apply_workspace_edit_async(edit)
            return {"applied": True}
        except Exception as e:
            logger.warning("lsp_apply_edit_rejected", label=(params or {}).get("label"), error=str(e))
            return {"applied": False, "failureReason": str(e)}

    def _on_configuration_request(self, params: Optional[Dict[str, Any]]) -> List[Any]:
        items = (params or {}).get("items") or []
        return [None for _ in items]

    # ============================================================
    # Helpers
    # ============================================================

    def _published_event(self, file: FileHandle) -> asyncio.Event:
        event = self._published.get(file)
        if event is None:
            event = asyncio.Event()
            self._published[file] = event
        return event

    async def _wait_for_diagnostics_async(self, file: FileHandle) -> None:
        try:
            await asyncio.wait_for(self._published_event(file).wait(), timeout=self.settle_seconds)
        except asyncio.TimeoutError:
            logger.debug("lsp_diagnostics_timeout", file=str(file))

    async def _close_excess_async(self) -> None:
        while len(self._open) >= self.max_open_documents:
            # The most recently used file may still be in the middle of a cleanup
            candidates = list(self._open)[:-1]
            victim = next((f for f in candidates if not self._is_dirty(f)), None)
            if victim is None:
                break
            await self._close_async(victim)

    def _is_dirty(self, file: FileHandle) -> bool:
        document = self.documents.get(file)
        return document is not None and document.is_dirty

    async def _close_async(self, file: FileHandle) -> None:
        self._open.pop(file, None)
        self._diagnostics.pop(file, None)
        self._published.pop(file, None)
        self.documents.close(file)
        try:
            await self.client.close_document_async(str(file))
        except Exception as e:
            logger.warning("lsp_document_close_failed", file=str(file), error=str(e))
