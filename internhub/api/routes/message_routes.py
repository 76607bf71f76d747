"""
Messaging Routes

GET /messages/conversations - Own conversations, most recent activity first
POST /messages/conversations - Start a conversation (reuses a direct one)
GET /messages/conversations/{conversation_id}/messages - Messages in a conversation
POST /messages/conversations/{conversation_id}/messages - Send a message (multipart form)
PUT /messages/conversations/{conversation_id}/read - Mark the conversation read
GET /messages/unread-count - Unread messages across all conversations
DELETE /messages/{message_id} - Delete own message
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Depends, Query, Form, UploadFile, File

from internhub.db.postgres import execute_raw_sql, in_clause
from internhub.core.auth import get_current_user
from internhub.services.message_service import ConversationService, ChatMessageService
from internhub.services.notification_service import build_data, notify_user
from internhub.services.realtime import manager
from internhub.utils.file_upload import discard_uploads, read_upload, store_upload
from internhub.utils.pagination import paginate
from internhub.schemas.schemas import (
    ChatMessageListResponse, ChatMessageResponse, ConversationCreate, ConversationListResponse,
    ConversationResponse, CountResponse, MessageResponse
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])

MESSAGE_MAX = 2000
MAX_ATTACHMENTS = 5


def load_conversation(conversation_id: str, user_id: int) -> dict:
    conversation = ConversationService().get_for_user(conversation_id, user_id)
    if conversation is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


def to_response(conversation: dict, user_id: int) -> ConversationResponse:
    unread = ChatMessageService().unread_count(user_id, [conversation["id"]])
    return ConversationResponse(**conversation, unread_count=unread)


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    user: dict = Depends(get_current_user)
):
    conversations, total = ConversationService().list_for_user(user["user_id"], page=page, limit=limit)
    return ConversationListResponse(
        conversations=[to_response(c, user["user_id"]) for c in conversations],
        pagination=paginate(page, limit, total)
    )


@router.post("/conversations", response_model=ConversationResponse, status_code=201)
async def start_conversation(data: ConversationCreate, user: dict = Depends(get_current_user)):
    """
    Start a conversation with one or more users.

    A two-party conversation that already exists is returned instead of a new one.
    """
    others = sorted(set(data.participant_ids) - {user["user_id"]})
    if not others:
        raise HTTPException(status_code=400, detail="A conversation needs at least one other participant")

    fragment, params = in_clause("uid", others)
    found = execute_raw_sql(
        f"SELECT user_id FROM users WHERE is_active = TRUE AND user_id IN {fragment}", params
    )
    if len(found) != len(others):
        raise HTTPException(status_code=404, detail="One or more participants not found")

    service = ConversationService()
    if len(others) == 1:
        existing = service.find_direct(user["user_id"], others[0])
        if existing:
            return to_response(existing, user["user_id"])

    conversation = service.create([user["user_id"]] + others, subject=data.subject)
    logger.info(f"User {user['user_id']} started conversation {conversation['id']}")
    return to_response(conversation, user["user_id"])


@router.get("/conversations/{conversation_id}/messages", response_model=ChatMessageListResponse)
async def list_messages(
    conversation_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    """Messages in a conversation, oldest first within the page. Participants only."""
    load_conversation(conversation_id, user["user_id"])
    messages, total = ChatMessageService().list(conversation_id, page=page, limit=limit)
    return ChatMessageListResponse(
        messages=[ChatMessageResponse(**m) for m in messages],
        pagination=paginate(page, limit, total)
    )


@router.post("/conversations/{conversation_id}/messages", response_model=ChatMessageResponse, status_code=201)
async def send_message(
    conversation_id: str,
    content: str = Form(..., min_length=1),
    attachments: List[UploadFile] = File(default=[]),
    user: dict = Depends(get_current_user)
):
    """Send a message. The other participants get it live and as a notification."""
    conversation = load_conversation(conversation_id, user["user_id"])

    if len(content) > MESSAGE_MAX:
        raise HTTPException(status_code=400, detail=f"Message cannot exceed {MESSAGE_MAX} characters")

    attachments = [a for a in attachments if a.filename]
    if len(attachments) > MAX_ATTACHMENTS:
        raise HTTPException(status_code=400, detail=f"At most {MAX_ATTACHMENTS} attachments are allowed")

    uploads = [await read_upload(a, "document") for a in attachments]
    saved = [store_upload(u) for u in uploads]
    stored = [{"name": s["original_name"], "url": s["url"], "content_type": s["content_type"]} for s in saved]

    try:
        message = ChatMessageService().create(conversation_id, user["user_id"], content, stored)
    except Exception:
        discard_uploads(saved)
        raise
    ConversationService().touch(conversation_id, content)

    for participant in conversation["participants"]:
        if participant == user["user_id"]:
            continue
        await manager.emit_to_user(participant, "message:new", message)
        await notify_user(
            participant,
            "message",
            f"New message from {user['name']}",
            content,
            sender_id=user["user_id"],
            data=build_data(conversation_id=conversation_id, url=f"/messages/{conversation_id}"),
        )

    return ChatMessageResponse(**message)


@router.put("/conversations/{conversation_id}/read", response_model=CountResponse)
async def mark_conversation_read(conversation_id: str, user: dict = Depends(get_current_user)):
    load_conversation(conversation_id, user["user_id"])
    count = ChatMessageService().mark_read(conversation_id, user["user_id"])
    return CountResponse(message="Conversation marked as read", count=count)


@router.get("/unread-count")
async def unread_count(user: dict = Depends(get_current_user)):
    conversation_ids = ConversationService().ids_for_user(user["user_id"])
    return {"unread_count": ChatMessageService().unread_count(user["user_id"], conversation_ids)}


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message(message_id: str, user: dict = Depends(get_current_user)):
    """Delete a message. Only its sender may do this."""
    service = ChatMessageService()
    message = service.get(message_id)
    if message is None:
        raise HTTPException(status_code=404, detail="Message not found")
    if message["sender_id"] != user["user_id"]:
        raise HTTPException(status_code=403, detail="Not authorized to delete this message")

    service.soft_delete(message_id)
    return MessageResponse(message="Message deleted")
