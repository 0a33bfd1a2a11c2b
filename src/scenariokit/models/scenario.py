"""Pydantic models for games, locations and exits.

These mirror the admin backend's JSON. Field names are snake_case in Python
and camelCase on the wire; ``populate_by_name`` lets tests and callers use
either. Unknown backend fields are ignored so newer servers do not break the
editor.

Terminology:
- location: a scene (graph node) inside one game
- exit: a directed transition out of a location (graph edge)
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model with camelCase aliases matching the backend payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self, *, exclude_none: bool = False) -> dict[str, Any]:
        """Dump to a JSON-ready dict using backend field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=exclude_none)


def _null_as_empty_list(value: Any) -> Any:
    return [] if value is None else value


# Backend rows use null for empty titles and lists
Text = Annotated[str, BeforeValidator(lambda value: "" if value is None else value)]
Tags = Annotated[list[str], BeforeValidator(_null_as_empty_list)]


class GameStatus(StrEnum):
    """Publication state of a game."""

    DRAFT = "DRAFT"
    TEST = "TEST"
    PUBLISHED = "PUBLISHED"


class ExitType(StrEnum):
    """How the runtime triggers an exit.

    BUTTON exits are shown as buttons, TRIGGER exits match free-text player
    input against ``trigger_text``, GAMEOVER exits end the session.
    """

    BUTTON = "BUTTON"
    TRIGGER = "TRIGGER"
    GAMEOVER = "GAMEOVER"


class Exit(WireModel):
    """A directed edge out of a location.

    ``is_game_over`` is independent of ``type``: an exit may carry both a
    target and the flag. Which one wins at runtime is undefined, so the
    editor only reports such exits (see ``is_ambiguous``).

    Attributes:
        id: Server-assigned id. Absent only on malformed backend rows.
        location_id: Owning location (``fromKey`` in export documents).
        type: BUTTON, TRIGGER or GAMEOVER.
        button_text: Caption for BUTTON exits.
        trigger_text: Phrase matched against player input for TRIGGER exits.
        target_location_id: Destination location, if any.
        is_game_over: Whether taking the exit ends the game.
    """

    id: str | None = None
    location_id: str | None = None
    type: ExitType = ExitType.BUTTON
    button_text: str | None = None
    trigger_text: str | None = None
    target_location_id: str | None = None
    is_game_over: bool = False

    @property
    def label(self) -> str:
        """Human-readable caption used by the flow overview."""
        if self.type == ExitType.TRIGGER:
            return self.trigger_text or "trigger"
        if self.type == ExitType.GAMEOVER:
            return "GAMEOVER"
        return self.button_text or "button"

    @property
    def is_ambiguous(self) -> bool:
        """True when the exit both navigates somewhere and ends the game."""
        return bool(self.target_location_id) and self.is_game_over

    @property
    def is_live(self) -> bool:
        """True for BUTTON/TRIGGER exits, which need a target to do anything."""
        return self.type in (ExitType.BUTTON, ExitType.TRIGGER)


class Location(WireModel):
    """A scene in the narrative graph.

    ``exits`` is only populated by the "full game" fetch; the editor treats
    it as one of several candidate edge sources, never as the truth.
    """

    id: str
    game_id: str | None = None
    order: int | None = None
    title: Text = ""
    description: str | None = None
    background_url: str | None = None
    music_url: str | None = None
    rules_prompt: str | None = None
    exits: Annotated[list[Exit], BeforeValidator(_null_as_empty_list)] = Field(
        default_factory=list
    )


class Game(WireModel):
    """A game with its metadata and ordered locations."""

    id: str
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
    locations: Annotated[list[Location], BeforeValidator(_null_as_empty_list)] = Field(
        default_factory=list
    )
