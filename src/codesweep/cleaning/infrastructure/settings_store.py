"""
Project settings for cleanup runs.

Settings live in a YAML file at the project root:

    cleanUnusedImports:
      removeUnusedVariables: true
      removeUnusedFunctions: true
      removeUnusedProps: false

Missing files, sections and keys fall back to defaults (every toggle on).
"""

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import structlog
import yaml

from codesweep.cleaning.domain.models import CleanupConfig
from codesweep.cleaning.domain.ports import SettingsStore
from codesweep.shared.domain.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

SETTINGS_SECTION = "cleanUnusedImports"

# setting key -> CleanupConfig field
CLEANUP_SETTING_KEYS: Dict[str, str] = {
    "removeUnusedVariables": "remove_unused_variables",
    "removeUnusedFunctions": "remove_unused_functions",
    "removeUnusedProps": "remove_unused_props",
}


class DictSettingsStore:
    """Settings backed by a plain mapping."""

    def __init__(self, values: Optional[Mapping[str, Any]] = None) -> None:
        self._values: Dict[str, Any] = dict(values or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)


class YamlSettingsStore(DictSettingsStore):
    """
    Settings read from a section of a YAML file.

    Raises:
        ConfigurationError: If the file is not valid YAML or the section is not a mapping
    """

    def __init__(self, path: Path, section: str = SETTINGS_SECTION) -> None:
        self.path = Path(path)
        self.section = section
        super().__init__(self._load())

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.debug("settings_file_missing", path=str(self.path))
            return {}

        try:
            with open(self.path, encoding="utf-8") as f:
                content = f.read()
            data = yaml.safe_load(content) if content.strip() else {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {self.path}: {e}", context={"path": str(self.path)})
        except OSError as e:
            raise ConfigurationError(f"Cannot read {self.path}: {e}", context={"path": str(self.path)})

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {self.path} must contain a mapping")

        section = data.get(self.section, {})
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ConfigurationError(
                f"Section '{self.section}' in {self.path} must be a mapping",
                context={"path": str(self.path), "section": self.section},
            )

        logger.debug("settings_loaded", path=str(self.path), keys=sorted(section))
        return section


def load_cleanup_config(store: SettingsStore) -> CleanupConfig:
    """
    Read the cleanup toggles once and freeze them.

    Raises:
        ConfigurationError: If a toggle is not a boolean
    """
    values: Dict[str, bool] = {}
    for key, field_name in CLEANUP_SETTING_KEYS.items():
        value = store.get(key, True)
        if not isinstance(value, bool):
            raise ConfigurationError(
                f"Setting '{key}' must be true or false, got {value!r}",
                context={"key": key},
            )
        values[field_name] = value

    return CleanupConfig(**values)
