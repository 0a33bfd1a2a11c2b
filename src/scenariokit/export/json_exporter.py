"""JSON scenario documents on disk.

Writes and reads the ``{game, locations, exits}`` document accepted by
``POST /admin/scenario/import``.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

from pydantic import ValidationError

from scenariokit.errors import ScenarioDocumentError
from scenariokit.models import ScenarioDocument

if TYPE_CHECKING:
    from pathlib import Path

_WHITESPACE = re.compile(r"\s+")
DEFAULT_FILENAME = "scenario.json"


def suggest_filename(title: str) -> str:
    """Download name for an export: whitespace runs become ``_``."""
    stem = _WHITESPACE.sub("_", title.strip())
    return f"{stem}.json" if stem else DEFAULT_FILENAME


class JsonExporter:
    """Export a scenario document as formatted JSON."""

    format_name = "json"

    def export(self, document: ScenarioDocument, output: Path) -> Path:
        """Write *document* to *output*.

        Args:
            document: Document to serialize.
            output: Target file, or a directory that receives a file named
                after the game title.

        Returns:
            Path to the written file.
        """
        if output.is_dir():
            output = output / suggest_filename(document.game.title)
        output.parent.mkdir(parents=True, exist_ok=True)
        data = document.to_wire()
        output.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        return output


def read_document(path: Path) -> ScenarioDocument:
    """Load and validate a scenario document.

    Raises:
        ScenarioDocumentError: If the file is unreadable, is not JSON, does not
            match the document shape, or has no game title.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ScenarioDocumentError(f"cannot read file: {e}", path) from e
    except json.JSONDecodeError as e:
        raise ScenarioDocumentError(f"invalid JSON: {e}", path) from e

    if not isinstance(raw, dict) or not isinstance(raw.get("game"), dict):
        raise ScenarioDocumentError("missing 'game' object", path)
    try:
        document = ScenarioDocument.model_validate(raw)
    except ValidationError as e:
        raise ScenarioDocumentError(str(e), path) from e
    if not document.game.title.strip():
        raise ScenarioDocumentError("game.title is required", path)
    return document
