"""
Request bodies for the realm API.

Bounds that are game rules (wager limits, queue length, inventory room) are
checked by the services so the player gets the game's own message; these
models only reject malformed input.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_STRICT = ConfigDict(extra="forbid", str_strip_whitespace=True)


class ActionQueueStartRequest(BaseModel):
    model_config = _STRICT

    action_type: str = Field(..., description="train, gather, cook, craft, smelt or agility")
    action_params: dict[str, Any] = Field(default_factory=dict, description="Parameters for the action")
    total: int = Field(default=0, description="Iterations to run; 0 repeats until stopped")


class ExerciseRequest(BaseModel):
    model_config = _STRICT

    exercise: str = Field(..., description="attack, strength or defense")


class GatherRequest(BaseModel):
    model_config = _STRICT

    activity: str = Field(..., description="mining, fishing, woodcutting or herblore")
    resource: str | None = Field(default=None, description="Specific resource; random when omitted")


class RecipeRequest(BaseModel):
    model_config = _STRICT

    recipe_id: str


class ObstacleRequest(BaseModel):
    model_config = _STRICT

    obstacle_id: str


class AmountRequest(BaseModel):
    model_config = _STRICT

    amount: int


class SlotRequest(BaseModel):
    model_config = _STRICT

    slot_number: int = Field(..., ge=0)


class CombatStartRequest(BaseModel):
    model_config = _STRICT

    monster_id: int
    attack_style_index: int = Field(default=0, ge=0)


class EatRequest(BaseModel):
    model_config = _STRICT

    inventory_slot_id: int


class LocationRequest(BaseModel):
    model_config = _STRICT

    location_type: str
    location_id: int


class RoleClaimRequest(LocationRequest):
    role_slug: str


class RoleAppointRequest(RoleClaimRequest):
    user_id: int


class TaxRateRequest(LocationRequest):
    tax_rate: int = Field(ge=0, le=50)


class RoleRemoveRequest(BaseModel):
    model_config = _STRICT

    reason: str | None = Field(default=None, max_length=500)


class PetitionCreateRequest(BaseModel):
    model_config = _STRICT

    target_player_role_id: int
    reason: str = Field(..., min_length=10, max_length=1000)
    request_appointment: bool = False


class PetitionResponseRequest(BaseModel):
    model_config = _STRICT

    response: str | None = Field(default=None, max_length=1000)


class ContributionRequest(BaseModel):
    model_config = _STRICT

    gold: int = Field(default=0, ge=0)
    devotion: int = Field(default=0, ge=0)


class RoomBuildRequest(BaseModel):
    model_config = _STRICT

    room_type: str
    grid_x: int = Field(..., ge=0)
    grid_y: int = Field(..., ge=0)


class FurnitureBuildRequest(BaseModel):
    model_config = _STRICT

    hotspot: str
    furniture_key: str


class HouseUpgradeRequest(BaseModel):
    model_config = _STRICT

    target_tier: str


class StorageRequest(BaseModel):
    model_config = _STRICT

    item_name: str
    quantity: int = Field(default=1, ge=1)


class GardenPlotRequest(BaseModel):
    model_config = _STRICT

    plot_slot: str = Field(..., description="planter_1 to planter_4")


class GardenPlantRequest(GardenPlotRequest):
    crop: str = "herbs"


class ServantHireRequest(BaseModel):
    model_config = _STRICT

    tier: str


class ServantTaskRequest(BaseModel):
    model_config = _STRICT

    task_type: str = Field(..., description="sawmill_run, fetch_materials or serve_food")
    params: dict[str, Any] = Field(default_factory=dict)


class DiceGameRequest(BaseModel):
    model_config = _STRICT

    game_type: str
    wager: int


class ScoreRequest(BaseModel):
    model_config = _STRICT

    minigame: str = Field(default="archery")
    score: int


class TradeRequest(BaseModel):
    model_config = _STRICT

    item_id: int
    quantity: int = Field(default=1)
