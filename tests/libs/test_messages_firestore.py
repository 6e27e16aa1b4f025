from datetime import datetime, UTC

import pytest
from unittest.mock import AsyncMock, MagicMock

from libs.firestore.messages import (
    delete_message,
    list_inbox,
    list_messages_for,
    mark_conversation_read,
    send_message,
    unread_count,
)
from libs.models.firestore import FirestoreMessage


def _message_doc(snapshot, doc_id, created_at, **fields):
    data = {"fromEmail": "a@example.com", "toEmail": "b@example.com", "text": "hi", "createdAt": created_at}
    data.update(fields)
    return snapshot(doc_id, data)


@pytest.mark.asyncio
async def test_send_message_sets_participants_and_unread(firestore_client, doc_ref):
    ref = doc_ref()
    firestore_client.collection("messages").document.return_value = ref

    stored = await send_message(
        firestore_client,
        FirestoreMessage(from_email="a@example.com", to_email="b@example.com", text="hello", read=True),
    )

    written = ref.set.call_args.args[0]
    assert written["participants"] == ["a@example.com", "b@example.com"]
    assert written["read"] is False
    assert written["fromEmail"] == "a@example.com"
    assert stored.id


@pytest.mark.asyncio
async def test_list_messages_for_uses_participants(firestore_client, snapshot):
    messages = firestore_client.collection("messages")
    messages.where.return_value.get = AsyncMock(return_value=[_message_doc(snapshot, "m1", None)])

    result = await list_messages_for(firestore_client, "a@example.com")

    field_filter = messages.where.call_args.kwargs["filter"]
    assert field_filter.field_path == "participants"
    assert field_filter.op_string == "array_contains"
    assert field_filter.value == "a@example.com"
    assert result[0].id == "m1"


@pytest.mark.asyncio
async def test_list_inbox_newest_first(firestore_client, snapshot):
    older = _message_doc(snapshot, "old", datetime(2024, 1, 1, tzinfo=UTC))
    newer = _message_doc(snapshot, "new", datetime(2024, 2, 1, tzinfo=UTC))
    firestore_client.collection("messages").where.return_value.limit.return_value.get = AsyncMock(
        return_value=[older, newer]
    )

    result = await list_inbox(firestore_client, "b@example.com", limit=10)

    firestore_client.collection("messages").where.return_value.limit.assert_called_once_with(10)
    assert [m.id for m in result] == ["new", "old"]


@pytest.mark.asyncio
async def test_unread_count_reads_aggregation(firestore_client):
    aggregate = MagicMock()
    aggregate.value = 4
    query = firestore_client.collection("messages").where.return_value.where.return_value
    query.count.return_value.get = AsyncMock(return_value=[[aggregate]])

    assert await unread_count(firestore_client, "b@example.com") == 4


@pytest.mark.asyncio
async def test_mark_conversation_read_batches_updates(firestore_client, mock_batch, snapshot):
    docs = [snapshot("m1", {}), snapshot("m2", {})]
    query = firestore_client.collection("messages").where.return_value.where.return_value.where.return_value
    query.get = AsyncMock(return_value=docs)

    updated = await mark_conversation_read(firestore_client, "b@example.com", "a@example.com")

    assert updated == 2
    assert [call.args for call in mock_batch.update.call_args_list] == [
        (docs[0].reference, {"read": True}),
        (docs[1].reference, {"read": True}),
    ]
    mock_batch.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_mark_conversation_read_nothing_unread(firestore_client, mock_batch):
    query = firestore_client.collection("messages").where.return_value.where.return_value.where.return_value
    query.get = AsyncMock(return_value=[])

    assert await mark_conversation_read(firestore_client, "b@example.com", "a@example.com") == 0
    mock_batch.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_message_sender_only(firestore_client, doc_ref, snapshot):
    ref = doc_ref(snapshot("m1", {"fromEmail": "a@example.com"}))
    firestore_client.collection("messages").document.return_value = ref

    with pytest.raises(PermissionError):
        await delete_message(firestore_client, "m1", "b@example.com")
    ref.delete.assert_not_awaited()

    await delete_message(firestore_client, "m1", "a@example.com")
    ref.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_missing_message(firestore_client, doc_ref):
    firestore_client.collection("messages").document.return_value = doc_ref()

    with pytest.raises(LookupError):
        await delete_message(firestore_client, "m1", "a@example.com")
