from codesweep.cleaning.infrastructure.documents import FileDocumentStore, TextDocument
from codesweep.cleaning.infrastructure.settings_store import (
    DictSettingsStore,
    YamlSettingsStore,
    load_cleanup_config,
)

__all__ = [
    "DictSettingsStore",
    "FileDocumentStore",
    "TextDocument",
    "YamlSettingsStore",
    "load_cleanup_config",
]
