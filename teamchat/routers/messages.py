"""
Message router: read and post channel messages.
"""

from fastapi import APIRouter

from teamchat.deps import Broadcaster, CurrentUser, DBSession
from teamchat.schemas import MessageCreate, MessageOut
from teamchat.services import messages as message_service

router = APIRouter(prefix="/message", tags=["messages"])


@router.get("/{channel_id}")
async def list_messages(channel_id: int, user: CurrentUser, db: DBSession):
    messages = await message_service.list_messages(db, channel_id, user)
    return {"success": True, "messages": [MessageOut.model_validate(m) for m in messages]}


@router.post("/{channel_id}")
async def post_message(
    channel_id: int,
    body: MessageCreate,
    user: CurrentUser,
    db: DBSession,
    broadcaster: Broadcaster,
):
    """Post a message and broadcast it to the channel topic."""
    message = await message_service.post_message(db, broadcaster, channel_id, user, body.content)
    return {"success": True, "message": message}
