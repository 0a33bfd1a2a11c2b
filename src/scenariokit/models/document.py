"""Scenario export/import document.

The document is the portable form of one game's graph. Locations are
identified by ``key`` and exits reference them through ``fromKey``/``toKey``,
so a document can be imported into a fresh game without reusing server ids.
"""

from __future__ import annotations

from pydantic import Field

from scenariokit.models.scenario import ExitType, GameStatus, Tags, Text, WireModel


class DocumentGame(WireModel):
    """Game metadata carried by the document."""

    title: Text = ""
    description: str | None = None
    author: str | None = None
    cover_url: str | None = None
    tags: Tags = Field(default_factory=list)
    rules: str | None = None
    world_rules: str | None = None
    gameplay_rules: str | None = None
    introduction: str | None = None
    backstory: str | None = None
    adventure_hooks: str | None = None
    status: GameStatus = GameStatus.DRAFT


class DocumentLocation(WireModel):
    """A location keyed by a document-local key."""

    key: str
    order: int
    title: Text = ""
    description: str | None = None
    rules_prompt: str | None = None
    background_url: str | None = None
    music_url: str | None = None


class DocumentExit(WireModel):
    """An exit between two document keys."""

    from_key: str
    type: ExitType = ExitType.BUTTON
    button_text: str | None = None
    trigger_text: str | None = None
    to_key: str | None = None
    is_game_over: bool = False


class ScenarioDocument(WireModel):
    """Complete export document: ``{game, locations, exits}``."""

    game: DocumentGame
    locations: list[DocumentLocation] = Field(default_factory=list)
    exits: list[DocumentExit] = Field(default_factory=list)
