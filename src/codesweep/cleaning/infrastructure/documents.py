"""
File-backed text documents.

Documents hold the in-memory text of a file while fixes are applied; edits
only reach the disk when the document is saved. Positions follow the
Language Server Protocol: zero-based lines, characters counted in UTF-16
code units.
"""

import asyncio
from typing import Dict, Iterable, List, Optional, Tuple

import structlog

from codesweep.cleaning.domain.models import FileHandle, Position, TextEdit
from codesweep.shared.domain.exceptions import DocumentError

logger = structlog.get_logger(__name__)


def _utf16_to_index(line: str, character: int) -> int:
    """Convert a UTF-16 column into a str index within `line`."""
    units = 0
    for index, char in enumerate(line):
        if units >= character:
            return index
        units += 2 if ord(char) > 0xFFFF else 1
    return len(line)


class TextDocument:
    """In-memory text of a single file with a dirty flag."""

    def __init__(self, file: FileHandle, text: str) -> None:
        self._file = file
        self._text = text
        self._dirty = False
        self.version = 1

    @property
    def file(self) -> FileHandle:
        return self._file

    @property
    def text(self) -> str:
        return self._text

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def line_count(self) -> int:
        return self._text.count("\n") + 1

    def offset_at(self, position: Position) -> int:
        """Absolute str offset of an LSP position, clamped to the document."""
        if position.line < 0:
            return 0

        line_start = 0
        for _ in range(position.line):
            newline = self._text.find("\n", line_start)
            if newline == -1:
                return len(self._text)
            line_start = newline + 1

        line_end = self._text.find("\n", line_start)
        if line_end == -1:
            line_end = len(self._text)
        line = self._text[line_start:line_end]
        if line.endswith("\r"):
            line = line[:-1]

        return line_start + _utf16_to_index(line, max(position.character, 0))

    def apply_edits(self, edits: Iterable[TextEdit]) -> bool:
        """
        Apply a batch of non-overlapping edits.

        All ranges refer to the text before the batch. Inserts at the same
        position keep their given order.

        Returns:
            True if the text changed

        Raises:
            DocumentError: If two edits overlap
        """
        resolved: List[Tuple[int, int, int, str]] = []
        for order, edit in enumerate(edits):
            start = self.offset_at(edit.range.start)
            end = self.offset_at(edit.range.end)
            if end < start:
                start, end = end, start
            resolved.append((start, order, end, edit.new_text))

        if not resolved:
            return False

        resolved.sort()
        for (_, _, prev_end, _), (start, _, _, _) in zip(resolved, resolved[1:]):
            if start < prev_end:
                raise DocumentError(
                    f"Overlapping edits in {self._file}",
                    context={"file": str(self._file)},
                )

        text = self._text
        for start, _, end, new_text in reversed(resolved):
            text = text[:start] + new_text + text[end:]

        if text == self._text:
            return False

        self._text = text
        self._dirty = True
        self.version += 1
        return True

    def mark_saved(self) -> None:
        self._dirty = False


class FileDocumentStore:
    """
    Opens files as TextDocuments and writes them back on save.

    Opened documents are cached, so every component working on a file during
    a run sees the same in-memory text.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding
        self._documents: Dict[FileHandle, TextDocument] = {}

    def get(self, file: FileHandle) -> Optional[TextDocument]:
        """The cached document for `file`, if it has been opened."""
        return self._documents.get(file)

    async def open_async(self, file: FileHandle) -> TextDocument:
        document = self._documents.get(file)
        if document is not None:
            return document

        try:
            text = await asyncio.to_thread(self._read, file)
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentError(f"Cannot open {file}: {e}", context={"file": str(file)}) from e

        document = TextDocument(file, text)
        self._documents[file] = document
        return document

    async def save_async(self, document: TextDocument) -> None:
        try:
            await asyncio.to_thread(self._write, document.file, document.text)
        except OSError as e:
            raise DocumentError(f"Cannot save {document.file}: {e}", context={"file": str(document.file)}) from e

        document.mark_saved()
        logger.debug("document_saved", file=str(document.file), version=document.version)

    def close(self, file: FileHandle) -> None:
        """Drop a document from the cache; unsaved edits are discarded."""
        self._documents.pop(file, None)

    def _read(self, file: FileHandle) -> str:
        # newline="" keeps CRLF line endings intact
        with open(file.path, encoding=self.encoding, newline="") as f:
            return f.read()

    def _write(self, file: FileHandle, text: str) -> None:
        with open(file.path, "w", encoding=self.encoding, newline="") as f:
            f.write(text)
