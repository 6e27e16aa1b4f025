"""Functions for direct messages in Firestore."""

import uuid
from typing import List

from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.base_query import FieldFilter

from libs.models.firestore import FirestoreMessage

MESSAGES = "messages"


def messages_for_query(client, email: str):
    """Query matching every message the member sent or received.

    Works with both the async and the sync client, so live listeners can
    reuse it.
    """
    return client.collection(MESSAGES).where(filter=FieldFilter("participants", "array_contains", email))


def message_from_snapshot(snapshot) -> FirestoreMessage:
    return FirestoreMessage(id=snapshot.id, **snapshot.to_dict())


async def send_message(client: AsyncClient, message: FirestoreMessage) -> FirestoreMessage:
    """Stores a message addressed to one peer.

    Args:
        client: The asynchronous Firestore client.
        message: The message; participants are derived from sender and recipient.

    Returns:
        The stored message including its generated id.
    """
    message_id = str(uuid.uuid4())
    stored = message.model_copy(
        update={
            "id": message_id,
            "read": False,
            "participants": [email for email in (message.from_email, message.to_email) if email],
        }
    )
    try:
        await client.collection(MESSAGES).document(message_id).set(stored.to_document())
    except Exception as e:
        raise RuntimeError(f"Failed to send message: {str(e)}") from e
    return stored


async def list_messages_for(client: AsyncClient, email: str) -> List[FirestoreMessage]:
    """Loads every message the member took part in, in store order."""
    docs = await messages_for_query(client, email).get()
    return [message_from_snapshot(doc) for doc in docs]


async def list_inbox(client: AsyncClient, email: str, limit: int = 50) -> List[FirestoreMessage]:
    """Loads up to `limit` messages addressed to the member, newest first.

    The store query is not ordered (that would need a composite index); the
    page is sorted after loading.
    """
    query = client.collection(MESSAGES).where(filter=FieldFilter("toEmail", "==", email)).limit(limit)
    docs = await query.get()
    messages = [message_from_snapshot(doc) for doc in docs]
    messages.sort(key=lambda m: m.created_at.timestamp() if m.created_at else 0, reverse=True)
    return messages


async def unread_count(client: AsyncClient, email: str) -> int:
    """Counts unread messages addressed to the member."""
    query = (
        client.collection(MESSAGES)
        .where(filter=FieldFilter("toEmail", "==", email))
        .where(filter=FieldFilter("read", "==", False))
    )
    result = await query.count().get()
    return result[0][0].value if result else 0


async def mark_conversation_read(client: AsyncClient, email: str, peer_email: str) -> int:
    """Marks every unread message from `peer_email` to `email` as read.

    Args:
        client: The asynchronous Firestore client.
        email: The reader.
        peer_email: The other participant of the conversation.

    Returns:
        Number of messages updated.
    """
    query = (
        client.collection(MESSAGES)
        .where(filter=FieldFilter("toEmail", "==", email))
        .where(filter=FieldFilter("fromEmail", "==", peer_email))
        .where(filter=FieldFilter("read", "==", False))
    )
    docs = await query.get()
    if not docs:
        return 0

    batch = client.batch()
    for doc in docs:
        batch.update(doc.reference, {"read": True})
    try:
        await batch.commit()
    except Exception as e:
        raise RuntimeError(f"Failed to mark messages read: {str(e)}") from e
    return len(docs)


async def delete_message(client: AsyncClient, message_id: str, requester_email: str) -> None:
    """Deletes a message on behalf of its sender.

    Raises:
        LookupError: If the message does not exist.
        PermissionError: If the requester did not send it.
    """
    doc_ref = client.collection(MESSAGES).document(message_id)
    snapshot = await doc_ref.get()
    if not snapshot.exists:
        raise LookupError(f"Message {message_id} not found")
    if snapshot.to_dict().get("fromEmail") != requester_email:
        raise PermissionError("Only the sender can delete this message")
    await doc_ref.delete()
