"""Friendship API route: one endpoint, one handler per action."""

import logging
from typing import Annotated, Awaitable, Callable
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from readshare.api.schemas import (
    AcceptAction,
    BlockAction,
    CancelAction,
    DataResponse,
    DeleteAction,
    FriendActionRequest,
    FriendEntryResponse,
    FriendshipOutcomeResponse,
    FriendshipResponse,
    ListFriendsAction,
    ListResponse,
    PageMeta,
    ProfileSummary,
    ReceivedRequestsAction,
    RejectAction,
    RequestAction,
    SentRequestsAction,
    UnblockAction,
)
from readshare.core.dependencies import get_current_actor, get_friendship_service
from readshare.domain.entities import FriendEntry, FriendshipOutcome, Page
from readshare.domain.services import IFriendshipService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/friends", tags=["friends"])

Handler = Callable[[IFriendshipService, UUID, BaseModel, Response], Awaitable[BaseModel]]


def _outcome_response(outcome: FriendshipOutcome, message: str) -> DataResponse:
    body = FriendshipOutcomeResponse(
        **FriendshipResponse.model_validate(outcome.friendship).model_dump(),
        auto_accepted=outcome.auto_accepted,
        message=message,
        friend=ProfileSummary.model_validate(outcome.counterpart) if outcome.counterpart else None,
    )
    return DataResponse[FriendshipOutcomeResponse](data=body)


def _page_response(page: Page[FriendEntry], since: bool) -> ListResponse:
    items = [
        FriendEntryResponse(
            friendship_id=entry.friendship.id,
            user_id=entry.counterpart_id,
            user=ProfileSummary.model_validate(entry.profile) if entry.profile else None,
            since=entry.friendship.updated_at if since else None,
            requested_at=None if since else entry.friendship.created_at,
        )
        for entry in page.items
    ]
    return ListResponse[FriendEntryResponse](
        data=items,
        meta=PageMeta(total=page.total, count=page.count, offset=page.offset, limit=page.limit),
    )


def _friendship_response(friendship) -> DataResponse:
    return DataResponse[FriendshipResponse](data=FriendshipResponse.model_validate(friendship))


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------
async def _request(service, actor_id, action: RequestAction, response: Response):
    outcome = await service.request_friendship(actor_id, action.target_user_id)
    if outcome.auto_accepted:
        message = "Friend request auto-accepted (mutual request)"
    elif outcome.created:
        response.status_code = status.HTTP_201_CREATED
        message = "Friend request sent"
    else:
        message = "Friend request already pending"
    return _outcome_response(outcome, message)


async def _accept(service, actor_id, action: AcceptAction, response: Response):
    outcome = await service.accept_request(actor_id, action.friendship_id)
    return _outcome_response(outcome, "Friend request accepted")


async def _reject(service, actor_id, action: RejectAction, response: Response):
    return _friendship_response(await service.reject_request(actor_id, action.friendship_id))


async def _cancel(service, actor_id, action: CancelAction, response: Response):
    return _friendship_response(await service.cancel_request(actor_id, action.friendship_id))


async def _delete(service, actor_id, action: DeleteAction, response: Response):
    return _friendship_response(await service.delete_friendship(actor_id, action.friendship_id))


async def _block(service, actor_id, action: BlockAction, response: Response):
    return _friendship_response(await service.block(actor_id, action.target_user_id))


async def _unblock(service, actor_id, action: UnblockAction, response: Response):
    return _friendship_response(await service.unblock(actor_id, action.target_user_id))


async def _list(service, actor_id, action: ListFriendsAction, response: Response):
    page = await service.list_friends(actor_id, action.limit, action.offset)
    return _page_response(page, since=True)


async def _received(service, actor_id, action: ReceivedRequestsAction, response: Response):
    page = await service.list_received_requests(actor_id, action.limit, action.offset)
    return _page_response(page, since=False)


async def _sent(service, actor_id, action: SentRequestsAction, response: Response):
    page = await service.list_sent_requests(actor_id, action.limit, action.offset)
    return _page_response(page, since=False)


HANDLERS: dict[type[BaseModel], Handler] = {
    RequestAction: _request,
    AcceptAction: _accept,
    RejectAction: _reject,
    CancelAction: _cancel,
    DeleteAction: _delete,
    BlockAction: _block,
    UnblockAction: _unblock,
    ListFriendsAction: _list,
    ReceivedRequestsAction: _received,
    SentRequestsAction: _sent,
}


@router.post("", response_model=None)
async def friend_action(
    body: FriendActionRequest,
    response: Response,
    service: Annotated[IFriendshipService, Depends(get_friendship_service)],
    actor_id: Annotated[UUID, Depends(get_current_actor)],
) -> BaseModel:
    """Dispatch a friendship action (request, accept, reject, cancel, delete,
    block, unblock, list, received, sent)."""
    action = body.root
    logger.debug("Friend action %s by %s", action.action, actor_id)
    return await HANDLERS[type(action)](service, actor_id, action, response)
