"""Game action types - explicit user inputs separated from room state."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field


class RevealAction(BaseModel):
    """Player reveals the cell at (x, y)."""

    action_type: Literal["reveal"] = "reveal"
    x: int = Field(..., description="Column index")
    y: int = Field(..., description="Row index")


class ToggleFlagAction(BaseModel):
    """Player flags or unflags the cell at (x, y)."""

    action_type: Literal["toggle_flag"] = "toggle_flag"
    x: int = Field(..., description="Column index")
    y: int = Field(..., description="Row index")


class StartGameAction(BaseModel):
    """A seated player starts the game from the lobby."""

    action_type: Literal["start_game"] = "start_game"


# Union type for all game actions
GameAction = Annotated[
    RevealAction | ToggleFlagAction | StartGameAction,
    Field(discriminator="action_type"),
]


def build_action_from_payload(payload: dict) -> GameAction:
    """Build a typed action from a raw payload dict.

    Args:
        payload: Dict with 'action_type' key and action-specific fields.

    Returns:
        The appropriate GameAction subtype.

    Raises:
        ValueError: If action_type is missing or unknown. pydantic's
            ValidationError (a ValueError) is raised for bad coordinates.
    """
    action_type = payload.get("action_type")

    if action_type == "reveal":
        return RevealAction.model_validate(payload)
    elif action_type == "toggle_flag":
        return ToggleFlagAction.model_validate(payload)
    elif action_type == "start_game":
        return StartGameAction.model_validate(payload)
    else:
        raise ValueError(f"Unknown action type: {action_type}")
