"""Vote ledger: one vote document per (post, member) plus denormalized counters."""

from dataclasses import dataclass
from typing import Tuple

from google.cloud.firestore_v1 import Increment
from google.cloud.firestore_v1.async_client import AsyncClient
from google.cloud.firestore_v1.async_transaction import async_transactional

from libs.models.firestore import FirestoreVote, VoteType

COUNTER_FIELDS = {"like": "upvotes", "dislike": "downvotes"}


@dataclass
class VoteResult:
    """Outcome of a vote as seen by the voter."""

    user_vote: VoteType | None
    upvotes: int
    downvotes: int


def resolve_vote(current: VoteType | None, direction: VoteType) -> Tuple[VoteType | None, int, int]:
    """Works out the vote transition for a member pressing like or dislike.

    Args:
        current: The member's existing vote, if any.
        direction: The button pressed.

    Returns:
        Tuple of (new_vote, upvotes_delta, downvotes_delta). new_vote is None
        when pressing the same direction again removes the vote.
    """
    deltas = {"like": 0, "dislike": 0}
    if current is None:
        new_vote = direction
        deltas[direction] += 1
    elif current == direction:
        new_vote = None
        deltas[direction] -= 1
    else:
        new_vote = direction
        deltas[direction] += 1
        deltas[current] -= 1
    return new_vote, deltas["like"], deltas["dislike"]


async def get_user_vote(client: AsyncClient, post_id: str, uid: str) -> VoteType | None:
    """Returns the member's vote on a post, or None."""
    snapshot = await client.collection(f"posts/{post_id}/votes").document(uid).get()
    if not snapshot.exists:
        return None
    return snapshot.to_dict().get("type")


async def _apply_vote(transaction, post_ref, vote_ref, direction: VoteType) -> VoteResult:
    post_snapshot = await post_ref.get(transaction=transaction)
    if not post_snapshot.exists:
        raise LookupError(f"Post {post_ref.id} not found")
    vote_snapshot = await vote_ref.get(transaction=transaction)

    current = vote_snapshot.to_dict().get("type") if vote_snapshot.exists else None
    new_vote, up_delta, down_delta = resolve_vote(current, direction)

    counters = {}
    if up_delta:
        counters[COUNTER_FIELDS["like"]] = Increment(up_delta)
    if down_delta:
        counters[COUNTER_FIELDS["dislike"]] = Increment(down_delta)

    if new_vote is None:
        transaction.delete(vote_ref)
    else:
        transaction.set(vote_ref, FirestoreVote(type=new_vote).to_document())
    transaction.update(post_ref, counters)

    stored = post_snapshot.to_dict() or {}
    return VoteResult(
        user_vote=new_vote,
        upvotes=(stored.get("upvotes") or 0) + up_delta,
        downvotes=(stored.get("downvotes") or 0) + down_delta,
    )


async def cast_vote(client: AsyncClient, post_id: str, uid: str, direction: VoteType) -> VoteResult:
    """Applies a like/dislike press to the ledger.

    The caller's vote is read and rewritten together with the counter changes
    inside one Firestore transaction. Firestore retries the transaction when
    another write touches the vote or the post first, so repeated presses by
    the same member are applied one after the other and each counter always
    equals the number of votes in that direction.

    Args:
        client: The asynchronous Firestore client.
        post_id: The post document id.
        uid: The voter's UID.
        direction: "like" or "dislike".

    Returns:
        VoteResult with the voter's resulting vote and the counters as
        committed by this transaction.

    Raises:
        LookupError: If the post does not exist.
        RuntimeError: If the transaction cannot be committed.
    """
    post_ref = client.collection("posts").document(post_id)
    vote_ref = client.collection(f"posts/{post_id}/votes").document(uid)

    apply_vote = async_transactional(_apply_vote)
    try:
        return await apply_vote(client.transaction(), post_ref, vote_ref, direction)
    except LookupError:
        raise
    except Exception as e:
        raise RuntimeError(f"Failed to record vote: {str(e)}") from e
