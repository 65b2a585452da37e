"""
Tests for FileCleanupCoordinator.

Exercises the step order, the configuration toggles and the
single-save behaviour against the in-memory analyzer.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from codesweep.cleaning.application.file_cleanup import FileCleanupCoordinator
from codesweep.cleaning.application.unused_props import UnusedPropsRemover
from codesweep.cleaning.domain.models import CleanupConfig, CodeActionKind, FileHandle, Range

CLEANED = "import { used } from './lib';\nexport const value = used();\n"


def _coordinator(config, documents, analyzer):
    return FileCleanupCoordinator.create(
        config,
        documents=documents,
        diagnostics=analyzer,
        fix_provider=analyzer,
        edit_applier=analyzer,
    )


class TestFileCleanupCoordinator:
    """Test per-file cleanup sequencing."""

    @pytest.mark.asyncio
    async def test_organizes_and_removes_then_saves(self, documents, analyzer, dirty_ts_file):
        coordinator = _coordinator(CleanupConfig(), documents, analyzer)

        assert await coordinator.cleanup_file_async(dirty_ts_file) is True

        assert dirty_ts_file.path.read_text(encoding="utf-8") == CLEANED
        assert documents.saved == [dirty_ts_file]

    @pytest.mark.asyncio
    async def test_organize_imports_runs_first(self, documents, analyzer, dirty_ts_file):
        coordinator = _coordinator(CleanupConfig(), documents, analyzer)

        await coordinator.cleanup_file_async(dirty_ts_file)

        kinds = [kind for _, _, kind in analyzer.fix_requests]
        assert kinds[0] == CodeActionKind.SOURCE_ORGANIZE_IMPORTS
        assert kinds[1:] == [CodeActionKind.QUICK_FIX]

    @pytest.mark.asyncio
    async def test_variables_toggle_disabled(self, documents, analyzer, dirty_ts_file):
        config = CleanupConfig(remove_unused_variables=False)
        coordinator = _coordinator(config, documents, analyzer)

        assert await coordinator.cleanup_file_async(dirty_ts_file) is True

        text = dirty_ts_file.path.read_text(encoding="utf-8")
        assert text.startswith("import { used } from './lib';\n")
        assert "const leftover = 1;" in text
        assert [d.code for d in analyzer.get_diagnostics(dirty_ts_file)] == [6133]

    @pytest.mark.asyncio
    async def test_functions_toggle_disabled(self, documents, analyzer, make_source):
        file = make_source("src/util.ts", "function helper() {}\nexport const x = 1;\n")
        analyzer.add_removal(file, 6196, Range.from_coords(0, 0, 1, 0))
        coordinator = _coordinator(CleanupConfig(remove_unused_functions=False), documents, analyzer)

        assert await coordinator.cleanup_file_async(file) is False
        assert documents.saved == []
        assert all(kind != CodeActionKind.QUICK_FIX for _, _, kind in analyzer.fix_requests)

    @pytest.mark.asyncio
    async def test_unused_function_removed(self, documents, analyzer, make_source):
        file = make_source("src/util.ts", "function helper() {}\nexport const x = 1;\n")
        analyzer.add_removal(file, 6196, Range.from_coords(0, 0, 1, 0))
        coordinator = _coordinator(CleanupConfig(), documents, analyzer)

        assert await coordinator.cleanup_file_async(file) is True
        assert file.path.read_text(encoding="utf-8") == "export const x = 1;\n"

    @pytest.mark.asyncio
    async def test_second_run_is_a_no_op(self, documents, analyzer, dirty_ts_file):
        coordinator = _coordinator(CleanupConfig(), documents, analyzer)

        assert await coordinator.cleanup_file_async(dirty_ts_file) is True
        assert await coordinator.cleanup_file_async(dirty_ts_file) is False

        assert dirty_ts_file.path.read_text(encoding="utf-8") == CLEANED
        assert documents.saved == [dirty_ts_file]

    @pytest.mark.asyncio
    async def test_clean_file_not_saved(self, documents, analyzer, make_source):
        file = make_source("src/clean.ts", "export const x = 1;\n")
        coordinator = _coordinator(CleanupConfig(), documents, analyzer)

        assert await coordinator.cleanup_file_async(file) is False
        assert documents.saved == []

    @pytest.mark.asyncio
    async def test_multiple_fixes_saved_once(self, documents, analyzer, make_source):
        file = make_source("src/many.ts", "function f() {}\nconst a = 1;\nconst b = 2;\nexport {};\n")
        # later ranges first so earlier removals do not shift them
        analyzer.add_removal(file, 6133, Range.from_coords(2, 0, 3, 0))
        analyzer.add_removal(file, 6133, Range.from_coords(1, 0, 2, 0))
        analyzer.add_removal(file, 6196, Range.from_coords(0, 0, 1, 0))
        coordinator = _coordinator(CleanupConfig(), documents, analyzer)

        assert await coordinator.cleanup_file_async(file) is True

        assert file.path.read_text(encoding="utf-8") == "export {};\n"
        assert documents.saved == [file]

    @pytest.mark.asyncio
    async def test_analyzer_failure_isolated_to_file(self, documents, analyzer, make_source, dirty_ts_file):
        broken = make_source("b.tsx", "export const B = () => null;\n")
        analyzer.failing_files.add(broken)
        coordinator = _coordinator(CleanupConfig(), documents, analyzer)

        assert await coordinator.cleanup_file_async(broken) is False
        assert await coordinator.cleanup_file_async(dirty_ts_file) is True

    @pytest.mark.asyncio
    async def test_unreadable_file_reports_not_modified(self, documents, analyzer, project_root):
        coordinator = _coordinator(CleanupConfig(), documents, analyzer)

        assert await coordinator.cleanup_file_async(FileHandle(project_root / "missing.ts")) is False

    @pytest.mark.asyncio
    async def test_save_failure_reports_not_modified(self, analyzer, dirty_ts_file, documents):
        documents.save_async = AsyncMock(side_effect=OSError("disk full"))
        coordinator = _coordinator(CleanupConfig(), documents, analyzer)

        assert await coordinator.cleanup_file_async(dirty_ts_file) is False

    @pytest.mark.asyncio
    async def test_props_step_runs_only_when_enabled(self, documents, analyzer, make_source):
        file = make_source("src/Button.tsx", "import React from 'react';\nexport const Button = ({ label }) => null;\n")
        remover = MagicMock(spec=UnusedPropsRemover)
        remover.remove_unused_props_async = AsyncMock(return_value=False)

        enabled = _coordinator(CleanupConfig(), documents, analyzer)
        enabled.props_remover = remover
        await enabled.cleanup_file_async(file)
        remover.remove_unused_props_async.assert_awaited_once_with(file)

        remover.remove_unused_props_async.reset_mock()
        disabled = _coordinator(CleanupConfig(remove_unused_props=False), documents, analyzer)
        disabled.props_remover = remover
        await disabled.cleanup_file_async(file)
        remover.remove_unused_props_async.assert_not_awaited()


class TestUnusedPropsRemover:
    """The props step is a placeholder that never edits."""

    @pytest.mark.asyncio
    async def test_react_component_left_untouched(self, documents, make_source):
        source = "import React from 'react';\nexport function Card({ title, unused }) { return title; }\n"
        file = make_source("src/Card.jsx", source)

        assert UnusedPropsRemover.implemented is False
        assert await UnusedPropsRemover(documents).remove_unused_props_async(file) is False

        document = await documents.open_async(file)
        assert document.text == source
        assert not document.is_dirty

    @pytest.mark.asyncio
    async def test_non_react_file(self, documents, make_source):
        file = make_source("src/plain.ts", "export const x = 1;\n")

        assert await UnusedPropsRemover(documents).remove_unused_props_async(file) is False
