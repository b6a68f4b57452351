"""JSON file persistence for the HTTP bindings."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from agent_notifier.core import ListenBinding
from agent_notifier.errors import SettingsError

logger = logging.getLogger(__name__)

HTTP_SETTINGS_KEY = "httpBindings"


class SettingsStore(Protocol):
    def load(self) -> ListenBinding: ...

    def save(self, binding: ListenBinding) -> None: ...


class JsonSettingsStore:
    """Stores the bindings under ``httpBindings`` in a JSON document."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read_document(self) -> dict:
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read settings store {self.path}: {e}")
            return {}
        return document if isinstance(document, dict) else {}

    def load(self) -> ListenBinding:
        """Return the stored bindings, or the defaults if absent or corrupt."""
        value = self._read_document().get(HTTP_SETTINGS_KEY)
        if value is None:
            return ListenBinding()
        try:
            return ListenBinding.model_validate(value)
        except ValidationError as e:
            logger.warning(f"Failed to parse stored HTTP settings: {e}")
            return ListenBinding()

    def save(self, binding: ListenBinding) -> None:
        """Write the bindings, keeping any other keys in the document.

        Raises:
            SettingsError: If the file cannot be written.
        """
        document = self._read_document()
        document[HTTP_SETTINGS_KEY] = binding.model_dump()

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as e:
            raise SettingsError(f"Failed to save HTTP settings: {e}") from e

        logger.info(f"Saved HTTP settings to {self.path}")
