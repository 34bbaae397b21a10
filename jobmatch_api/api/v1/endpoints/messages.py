"""Direct messaging endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, status

from ....errors import ForbiddenError, NotFoundError
from ....inputs import CamelModel
from ....models import User
from ....store import LocalStorage
from ..deps import get_current_user, get_store

router = APIRouter(prefix="/messages", tags=["messages"])


class SendMessageRequest(CamelModel):
    receiver_id: str
    content: str = ""


@router.get("/conversations")
async def list_conversations(
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, List[Dict[str, Any]]]:
    summaries = await store.get_conversations(user.id)
    return {"items": [summary.to_dict() for summary in summaries]}


@router.get("/{contact_id}")
async def get_conversation(
    contact_id: str,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, List[Dict[str, Any]]]:
    messages = await store.get_conversation(user.id, contact_id)
    return {"items": [message.to_dict() for message in messages]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(
    request: SendMessageRequest,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    message = await store.create_message(
        {"senderId": user.id, "receiverId": request.receiver_id, "content": request.content}
    )
    return message.to_dict()


@router.post("/{message_id}/read")
async def mark_read(
    message_id: str,
    user: User = Depends(get_current_user),
    store: LocalStorage = Depends(get_store),
) -> Dict[str, Any]:
    message = await store.get_message(message_id)
    if message is None:
        raise NotFoundError("Message not found", {"messageId": message_id})
    if message.receiver_id != user.id:
        raise ForbiddenError("Only the receiver can mark a message as read")
    updated = await store.mark_message_as_read(message_id)
    return updated.to_dict()
