"""
One-shot skilling actions and their info panels.

The same actions can be repeated in the background through the action
queue endpoints.
"""

from fastapi import APIRouter

from ..game.agility_service import AgilityService
from ..game.cooking_service import CookingService
from ..game.crafting_service import CraftingService
from ..game.gathering_service import GatheringService
from ..game.training_service import TrainingService
from ..schemas.requests import ExerciseRequest, GatherRequest, ObstacleRequest, RecipeRequest
from .dependencies import CurrentUser, SessionDep
from .responses import ok, rejected, respond

activities_router = APIRouter(tags=["activities"])


@activities_router.get("/training")
async def get_training(current_user: CurrentUser, session: SessionDep):
    service = TrainingService(session)
    return ok(
        {
            "can_train": service.can_train(current_user),
            "exercises": await service.get_available_exercises(current_user),
            "combat_stats": await service.get_combat_stats(current_user),
        }
    )


@activities_router.post("/training/train")
async def train(body: ExerciseRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await TrainingService(session).train(current_user, body.exercise))


@activities_router.get("/gathering")
async def get_gathering(current_user: CurrentUser, session: SessionDep):
    service = GatheringService(session)
    return ok(
        {
            "activities": await service.get_available_activities(current_user),
            "seasonal": await service.get_seasonal_data(),
        }
    )


@activities_router.get("/gathering/{activity}")
async def get_gathering_activity(activity: str, current_user: CurrentUser, session: SessionDep):
    info = await GatheringService(session).get_activity_info(current_user, activity)
    if info is None:
        return rejected("Invalid activity.")
    return ok(info)


@activities_router.post("/gathering/gather")
async def gather(body: GatherRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await GatheringService(session).gather(current_user, body.activity, body.resource))


@activities_router.get("/cooking")
async def get_cooking(current_user: CurrentUser, session: SessionDep):
    return ok(await CookingService(session).get_cooking_info(current_user))


@activities_router.post("/cooking/cook")
async def cook(body: RecipeRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await CookingService(session).cook(current_user, body.recipe_id))


@activities_router.get("/crafting")
async def get_crafting(current_user: CurrentUser, session: SessionDep):
    info = await CraftingService(session).get_crafting_info(current_user)
    if info is None:
        return rejected("You cannot craft here.")
    return ok(info)


@activities_router.post("/crafting/craft")
async def craft(body: RecipeRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await CraftingService(session).craft(current_user, body.recipe_id))


@activities_router.post("/crafting/smelt")
async def smelt(body: RecipeRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await CraftingService(session).smelt(current_user, body.recipe_id))


@activities_router.get("/agility")
async def get_agility(current_user: CurrentUser, session: SessionDep):
    return ok(await AgilityService(session).get_agility_info(current_user))


@activities_router.post("/agility/train")
async def train_agility(body: ObstacleRequest, current_user: CurrentUser, session: SessionDep):
    return respond(await AgilityService(session).train(current_user, body.obstacle_id))
