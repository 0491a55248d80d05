"""
Tavern dice games and the daily minigame.
"""

from typing import Literal

from fastapi import APIRouter, Query

from ..game.dice_game_service import DiceGameService
from ..game.minigame_service import MinigameService
from ..models.tavern import MinigameReward
from ..schemas.requests import DiceGameRequest, ScoreRequest
from .dependencies import CurrentUser, SessionDep
from .responses import ok, rejected, respond

tavern_router = APIRouter(prefix="/tavern", tags=["tavern"])
minigames_router = APIRouter(prefix="/minigames", tags=["tavern"])


def _reward_to_dict(reward: MinigameReward) -> dict:
    return {
        "id": reward.id,
        "minigame": reward.minigame,
        "reward_type": reward.reward_type,
        "rank": reward.rank,
        "gold_amount": reward.gold_amount,
        "item": reward.item.name if reward.item else None,
        "location_type": reward.location_type,
        "location_id": reward.location_id,
        "period_start": reward.period_start.isoformat(),
        "period_end": reward.period_end.isoformat(),
    }


@tavern_router.get("/dice")
async def get_dice_status(current_user: CurrentUser, session: SessionDep):
    service = DiceGameService(session)
    data = await service.can_play(current_user)
    data["history"] = await service.get_game_history(current_user)
    if current_user.current_location_type and current_user.current_location_id:
        data["stats"] = await service.get_tavern_stats(
            current_user, current_user.current_location_type, current_user.current_location_id
        )
    return ok(data)


@tavern_router.post("/dice/play")
async def play_dice(body: DiceGameRequest, current_user: CurrentUser, session: SessionDep):
    if not current_user.current_location_type or not current_user.current_location_id:
        return rejected("You must be at a location to visit the tavern.")
    result = await DiceGameService(session).play(
        current_user,
        body.game_type,
        body.wager,
        current_user.current_location_type,
        current_user.current_location_id,
    )
    return respond(result)


@minigames_router.get("")
async def get_minigame_info(current_user: CurrentUser, session: SessionDep):
    service = MinigameService(session)
    data = await service.get_player_info(current_user)
    data["history"] = await service.get_rewards_history(current_user)
    data["pending_rewards"] = await service.get_pending_count(current_user)
    return ok(data)


@minigames_router.post("/play")
async def play_minigame(current_user: CurrentUser, session: SessionDep):
    return respond(await MinigameService(session).play(current_user))


@minigames_router.post("/score")
async def submit_score(body: ScoreRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await MinigameService(session).submit_score(current_user, body.minigame, body.score))


@minigames_router.get("/{minigame}/leaderboard")
async def get_leaderboard(
    minigame: str,
    current_user: CurrentUser,
    session: SessionDep,
    period: Literal["daily", "weekly", "monthly"] = Query(default="daily"),
):
    board = await MinigameService(session).get_leaderboard(minigame, period)
    return ok({"minigame": minigame, "period": period, "entries": board})


@minigames_router.get("/rewards")
async def get_pending_rewards(current_user: CurrentUser, session: SessionDep):
    rewards = await MinigameService(session).get_pending_rewards(current_user)
    return ok({"rewards": [_reward_to_dict(reward) for reward in rewards]})


@minigames_router.post("/rewards/collect")
async def collect_rewards(current_user: CurrentUser, session: SessionDep):
    return respond(await MinigameService(session).collect_rewards(current_user))
