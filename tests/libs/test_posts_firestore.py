import pytest
from unittest.mock import AsyncMock, MagicMock

from google.api_core.exceptions import AlreadyExists
from google.cloud.firestore_v1 import SERVER_TIMESTAMP

from libs.firestore.posts import (
    count_commented_posts,
    create_post,
    delete_post,
    get_post,
    list_posts,
    list_saved_post_ids,
    record_view,
    toggle_saved_post,
)
from libs.models.firestore import FirestorePost

STORED_POST = {
    "title": "Exam stress",
    "problem": "I can't sleep before exams",
    "category": "school",
    "user": "author@example.com",
    "upvotes": 2,
    "downvotes": 0,
    "comments": 1,
    "views": 10,
}


@pytest.mark.asyncio
async def test_list_posts_orders_newest_first(firestore_client, snapshot):
    posts = firestore_client.collection("posts")
    posts.order_by.return_value.get = AsyncMock(return_value=[snapshot("p1", STORED_POST)])

    result = await list_posts(firestore_client)

    posts.order_by.assert_called_once_with("createdAt", direction="DESCENDING")
    assert [p.id for p in result] == ["p1"]
    assert result[0].author_email == "author@example.com"


@pytest.mark.asyncio
async def test_list_posts_failure_is_runtime_error(firestore_client):
    firestore_client.collection("posts").order_by.return_value.get = AsyncMock(side_effect=Exception("unavailable"))

    with pytest.raises(RuntimeError, match="Failed to load posts"):
        await list_posts(firestore_client)


@pytest.mark.asyncio
async def test_get_post_missing_returns_none(firestore_client, doc_ref):
    firestore_client.collection("posts").document.return_value = doc_ref()

    assert await get_post(firestore_client, "nope") is None


@pytest.mark.asyncio
async def test_create_post_zeroes_counters(firestore_client, doc_ref):
    ref = doc_ref()
    firestore_client.collection("posts").document.return_value = ref
    post = FirestorePost(
        title="t", problem="p", category="finance", author_email="a@example.com", upvotes=5, views=9
    )

    stored = await create_post(firestore_client, post)

    assert stored.id
    written = ref.set.call_args.args[0]
    assert written["user"] == "a@example.com"
    assert (written["upvotes"], written["downvotes"], written["comments"], written["views"]) == (0, 0, 0, 0)
    assert written["createdAt"] is SERVER_TIMESTAMP
    assert "id" not in written


@pytest.mark.asyncio
async def test_delete_post_by_author(firestore_client, doc_ref, snapshot):
    ref = doc_ref(snapshot("p1", STORED_POST))
    firestore_client.collection("posts").document.return_value = ref

    await delete_post(firestore_client, "p1", "author@example.com")

    firestore_client.recursive_delete.assert_awaited_once_with(ref)


@pytest.mark.asyncio
async def test_delete_post_rejects_non_author(firestore_client, doc_ref, snapshot):
    firestore_client.collection("posts").document.return_value = doc_ref(snapshot("p1", STORED_POST))

    with pytest.raises(PermissionError):
        await delete_post(firestore_client, "p1", "someone@example.com")
    firestore_client.recursive_delete.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_post_missing(firestore_client, doc_ref):
    firestore_client.collection("posts").document.return_value = doc_ref()

    with pytest.raises(LookupError):
        await delete_post(firestore_client, "p1", "author@example.com")


class TestRecordView:
    """A member's views are counted once per post."""

    @pytest.mark.asyncio
    async def test_first_open_counts(self, firestore_client, mock_batch, doc_ref):
        marker_ref = doc_ref()
        post_ref = doc_ref()
        firestore_client.collection("users/u1/viewedPosts").document.return_value = marker_ref
        firestore_client.collection("posts").document.return_value = post_ref

        counted = await record_view(firestore_client, "p1", "u1")

        assert counted is True
        assert mock_batch.create.call_args.args[0] is marker_ref
        assert mock_batch.create.call_args.args[1]["postId"] == "p1"
        mock_batch.set.assert_not_called()
        update_ref, update = mock_batch.update.call_args.args
        assert update_ref is post_ref
        assert update["views"].value == 1
        mock_batch.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_reopen_does_not_count(self, firestore_client, mock_batch, doc_ref, snapshot):
        firestore_client.collection("users/u1/viewedPosts").document.return_value = doc_ref(snapshot("p1", {"postId": "p1"}))

        counted = await record_view(firestore_client, "p1", "u1")

        assert counted is False
        mock_batch.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_first_open_counts_once(self, firestore_client, mock_batch, doc_ref):
        """Both opens miss the marker; the second marker create is rejected with its increment."""
        firestore_client.collection("users/u1/viewedPosts").document.return_value = doc_ref()
        mock_batch.commit.side_effect = [None, AlreadyExists("viewedPosts/p1 already exists")]

        first = await record_view(firestore_client, "p1", "u1")
        second = await record_view(firestore_client, "p1", "u1")

        assert (first, second) == (True, False)
        assert mock_batch.commit.await_count == 2
        assert mock_batch.create.call_count == 2

    @pytest.mark.asyncio
    async def test_commit_failure_is_runtime_error(self, firestore_client, mock_batch, doc_ref):
        firestore_client.collection("users/u1/viewedPosts").document.return_value = doc_ref()
        mock_batch.commit.side_effect = Exception("unavailable")

        with pytest.raises(RuntimeError, match="Failed to record view"):
            await record_view(firestore_client, "p1", "u1")


@pytest.mark.asyncio
async def test_toggle_saved_post_saves_then_unsaves(firestore_client, doc_ref, snapshot):
    marker_ref = doc_ref()
    firestore_client.collection("users/u1/savedPosts").document.return_value = marker_ref

    assert await toggle_saved_post(firestore_client, "u1", "p1") is True
    marker_ref.set.assert_awaited_once()

    marker_ref.get.return_value = snapshot("p1", {"postId": "p1"})
    assert await toggle_saved_post(firestore_client, "u1", "p1") is False
    marker_ref.delete.assert_awaited_once()


@pytest.mark.asyncio
async def test_list_saved_post_ids(firestore_client, snapshot):
    firestore_client.collection("users/u1/savedPosts").get = AsyncMock(
        return_value=[snapshot("p1", {}), snapshot("p2", {})]
    )

    assert await list_saved_post_ids(firestore_client, "u1") == {"p1", "p2"}


@pytest.mark.asyncio
async def test_count_commented_posts_excludes_own_posts(firestore_client, snapshot):
    def comment_on(post_id):
        reference = MagicMock()
        reference.parent.parent.id = post_id
        return snapshot("c", {"user": "me@example.com"}, reference=reference)

    group = MagicMock()
    group.where.return_value.get = AsyncMock(
        return_value=[comment_on("p1"), comment_on("p1"), comment_on("p2"), comment_on("mine")]
    )
    firestore_client.collection_group.return_value = group
    firestore_client.collection("posts").where.return_value.get = AsyncMock(return_value=[snapshot("mine", {})])

    assert await count_commented_posts(firestore_client, "me@example.com") == 2
    firestore_client.collection_group.assert_called_once_with("comments")
