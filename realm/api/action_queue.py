"""
Action queue endpoints.

Starting a queue commits it before the first iteration is scheduled on the
background worker so the worker's own session can see the row.
"""

from fastapi import APIRouter, Request

from ..game.action_queue_service import ActionQueueService, queue_to_dict
from ..schemas.requests import ActionQueueStartRequest
from ..structured_logging.enhanced_logging_config import get_logger
from .dependencies import CurrentUser, SessionDep
from .responses import ok, respond

logger = get_logger(__name__)

action_queue_router = APIRouter(prefix="/action-queue", tags=["action-queue"])


@action_queue_router.get("")
async def get_latest_queue(current_user: CurrentUser, session: SessionDep):
    queue = await ActionQueueService(session).get_latest_queue(current_user)
    return ok(queue_to_dict(queue) if queue else None)


@action_queue_router.post("/start")
async def start_queue(body: ActionQueueStartRequest, request: Request, current_user: CurrentUser, session: SessionDep):
    result = await ActionQueueService(session).start_queue(
        current_user, body.action_type, body.action_params, body.total
    )
    if not result["success"]:
        return respond(result)

    queue = result["queue"]
    await session.commit()
    processor = getattr(request.app.state, "action_queue_processor", None)
    if processor is not None:
        processor.schedule(queue.id, delay=0)
    else:
        logger.warning("Action queue worker not running; queue will start on next worker recovery", queue_id=queue.id)
    return respond(result, data={"queue": queue_to_dict(queue)})


@action_queue_router.post("/cancel")
async def cancel_queue(current_user: CurrentUser, session: SessionDep):
    result = await ActionQueueService(session).cancel_queue(current_user)
    if not result["success"]:
        return respond(result)
    return respond(result, data={"queue": queue_to_dict(result["queue"])})


@action_queue_router.post("/{queue_id}/dismiss")
async def dismiss_queue(queue_id: int, current_user: CurrentUser, session: SessionDep):
    return respond(await ActionQueueService(session).dismiss_queue(current_user, queue_id))
