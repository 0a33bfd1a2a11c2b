"""Scenario document export and import."""

from __future__ import annotations

from scenariokit.export.context import build_document, remap_document
from scenariokit.export.importer import dangling_keys, import_document
from scenariokit.export.json_exporter import JsonExporter, read_document, suggest_filename

__all__ = [
    "JsonExporter",
    "build_document",
    "dangling_keys",
    "import_document",
    "read_document",
    "remap_document",
    "suggest_filename",
]
