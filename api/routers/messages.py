"""Direct messaging router.

There is no conversation resource: conversation lists and threads are derived
from the member's messages on every request (or every snapshot, for the live
stream).
"""

from __future__ import annotations

import asyncio
import json
import uuid
from dataclasses import asdict
from typing import AsyncGenerator, List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.responses import StreamingResponse

from api.auth import User, get_current_member
from api.conversations import build_conversation_list, conversation_thread
from api.errors import http_error
from api.models import (
    ConversationSummaryResponse,
    MarkReadResponse,
    MessageCreate,
    UnreadCountResponse,
)
from libs.common.settings import get_settings
from libs.firebase.client import get_firestore_async_client, get_firestore_client
from libs.firestore.listeners import subscriptions
from libs.firestore.messages import (
    delete_message,
    list_inbox,
    list_messages_for,
    mark_conversation_read,
    message_from_snapshot,
    messages_for_query,
    send_message,
    unread_count,
)
from libs.firestore.users import find_user_by_email
from libs.models.firestore import FirestoreMessage

logger = structlog.get_logger(__name__)
router = APIRouter()


def _summaries(messages: List[FirestoreMessage], me: str, search: str) -> List[ConversationSummaryResponse]:
    return [ConversationSummaryResponse(**asdict(s)) for s in build_conversation_list(messages, me, search)]


@router.post(
    "/v1/messages",
    response_model=FirestoreMessage,
    status_code=status.HTTP_201_CREATED,
    tags=["Messages"],
    summary="Send a direct message",
)
async def send_message_endpoint(
    request: MessageCreate,
    current_user: User = Depends(get_current_member),
) -> FirestoreMessage:
    """Send a text message, or one image previously uploaded via `/api/upload`.

    When an image URL is given the text is dropped. The recipient needs no
    profile document: when one exists it supplies the recipient uid and
    display name, otherwise `toUid` is stored as null.

    Raises:
        HTTPException: 400 if the member messages themself.

    Example:
        ```bash
        curl -X POST http://localhost:8000/api/v1/messages \\
          -H "Authorization: Bearer <id-token>" \\
          -H "Content-Type: application/json" \\
          -d '{"toEmail": "friend@example.com", "text": "Thanks for the advice!"}'
        ```
    """
    to_email = str(request.to_email)
    if to_email == current_user.email:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot message yourself")

    client = get_firestore_async_client()
    try:
        recipient = await find_user_by_email(client, to_email)
        message = await send_message(
            client,
            FirestoreMessage(
                from_uid=current_user.uid,
                from_email=current_user.email,
                from_display_name=current_user.name,
                to_uid=recipient.uid if recipient else None,
                to_email=to_email,
                to_display_name=request.to_display_name or (recipient.display_name if recipient else None),
                text=request.text,
                image_url=request.image_url,
            ),
        )
    except Exception as e:
        raise http_error(e, "Failed to send message") from e

    logger.info("Message sent", message_id=message.id, has_image=bool(message.image_url))
    return message


@router.get(
    "/v1/messages/conversations",
    response_model=List[ConversationSummaryResponse],
    tags=["Messages"],
    summary="List the member's conversations",
)
async def get_conversations(
    search: str = Query("", description="Filter on peer email or display name"),
    current_user: User = Depends(get_current_member),
) -> List[ConversationSummaryResponse]:
    """One entry per peer with the latest message and unread count, newest first."""
    try:
        messages = await list_messages_for(get_firestore_async_client(), current_user.email)
    except Exception as e:
        raise http_error(e, "Failed to load conversations") from e
    return _summaries(messages, current_user.email, search)


@router.get("/v1/messages/conversations/stream", tags=["Messages"])
async def stream_conversations(
    request: Request,
    search: str = Query(""),
    current_user: User = Depends(get_current_member),
) -> StreamingResponse:
    """Live conversation list via Server-Sent Events.

    A Firestore listener on the member's messages is opened when the client
    connects and closed when it disconnects. Every snapshot produces one
    `conversations` event holding the full derived list.

    Events:
        - conversations: JSON array of conversation summaries
        - error: the listener could not be started

    Example:
        ```bash
        curl -N http://localhost:8000/api/v1/messages/conversations/stream \\
          -H "Authorization: Bearer <id-token>"
        ```
    """
    keepalive = get_settings().stream_keepalive_seconds
    me = current_user.email

    async def generate_sse_stream() -> AsyncGenerator[str, None]:
        """Relay listener snapshots as SSE events until the client goes away."""
        owner = f"conversations:{current_user.uid}:{uuid.uuid4()}"
        try:
            queue = subscriptions.open_queue(
                owner, messages_for_query(get_firestore_client(), me), asyncio.get_running_loop()
            )
        except Exception as e:
            logger.error("Failed to open conversation listener", uid=current_user.uid, error=str(e))
            yield "event: error\n"
            yield f"data: {json.dumps({'error': 'Live updates are unavailable'})}\n\n"
            return

        try:
            while not await request.is_disconnected():
                try:
                    docs = await asyncio.wait_for(queue.get(), timeout=keepalive)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue

                summaries = _summaries([message_from_snapshot(doc) for doc in docs], me, search)
                payload = [s.model_dump(mode="json", by_alias=True) for s in summaries]
                yield "event: conversations\n"
                yield f"data: {json.dumps(payload)}\n\n"
        finally:
            subscriptions.close(owner)

    return StreamingResponse(
        generate_sse_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@router.get(
    "/v1/messages/inbox",
    response_model=List[FirestoreMessage],
    tags=["Messages"],
    summary="Latest messages addressed to the member",
)
async def get_inbox(current_user: User = Depends(get_current_member)) -> List[FirestoreMessage]:
    try:
        return await list_inbox(get_firestore_async_client(), current_user.email, limit=get_settings().inbox_limit)
    except Exception as e:
        raise http_error(e, "Failed to load inbox") from e


@router.get(
    "/v1/messages/unread-count",
    response_model=UnreadCountResponse,
    tags=["Messages"],
    summary="Unread message badge count",
)
async def get_unread_count(current_user: User = Depends(get_current_member)) -> UnreadCountResponse:
    try:
        unread = await unread_count(get_firestore_async_client(), current_user.email)
    except Exception as e:
        raise http_error(e, "Failed to count unread messages") from e
    return UnreadCountResponse(unread=unread)


@router.delete(
    "/v1/messages/id/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Messages"],
    summary="Delete a message you sent",
)
async def delete_message_endpoint(
    message_id: str,
    current_user: User = Depends(get_current_member),
) -> Response:
    try:
        await delete_message(get_firestore_async_client(), message_id, current_user.email)
    except Exception as e:
        raise http_error(e, "Failed to delete message") from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/v1/messages/{peer_email}",
    response_model=List[FirestoreMessage],
    tags=["Messages"],
    summary="Conversation thread with one peer",
)
async def get_thread(
    peer_email: str,
    current_user: User = Depends(get_current_member),
) -> List[FirestoreMessage]:
    """Messages exchanged with `peer_email`, oldest first."""
    try:
        messages = await list_messages_for(get_firestore_async_client(), current_user.email)
    except Exception as e:
        raise http_error(e, "Failed to load conversation") from e
    return conversation_thread(messages, current_user.email, peer_email)


@router.post(
    "/v1/messages/{peer_email}/read",
    response_model=MarkReadResponse,
    tags=["Messages"],
    summary="Mark a conversation as read",
)
async def mark_read(
    peer_email: str,
    current_user: User = Depends(get_current_member),
) -> MarkReadResponse:
    try:
        updated = await mark_conversation_read(get_firestore_async_client(), current_user.email, peer_email)
    except Exception as e:
        raise http_error(e, "Failed to mark conversation read") from e
    logger.debug("Conversation marked read", peer=peer_email, updated=updated)
    return MarkReadResponse(updated=updated)
