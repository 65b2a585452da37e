from codesweep.lsp.client import LanguageServerClient
from codesweep.lsp.manager import LSPManager
from codesweep.lsp.workspace import LanguageServerWorkspace

__all__ = [
    "LanguageServerClient",
    "LSPManager",
    "LanguageServerWorkspace",
]
