"""Derived conversation views over the flat message stream."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from libs.models.firestore import FirestoreMessage


@dataclass
class ConversationSummary:
    """One row of a member's conversation list."""

    peer_email: str
    peer_display_name: Optional[str]
    last_text: Optional[str]
    last_at: Optional[datetime]
    unread_count: int


def _ts(message: FirestoreMessage) -> float:
    return message.created_at.timestamp() if message.created_at else 0.0


def build_conversation_list(
    messages: Iterable[FirestoreMessage], me: str, search: str = ""
) -> List[ConversationSummary]:
    """Group a member's messages by the other participant.

    Each group keeps the newest message's text, time and peer display name,
    and counts unread messages addressed to `me`. Groups are returned newest
    first.

    Args:
        messages: Every message the member took part in, any order.
        me: The member's email.
        search: Optional case-insensitive filter on peer email or display name.

    Returns:
        One summary per peer.
    """
    by_peer: Dict[str, ConversationSummary] = {}
    newest: Dict[str, float] = {}

    for message in messages:
        peer = message.to_email if message.from_email == me else message.from_email
        if not peer:
            continue
        ts = _ts(message)
        display_name = message.from_display_name if message.from_email == peer else message.to_display_name

        summary = by_peer.get(peer)
        if summary is None:
            summary = ConversationSummary(
                peer_email=peer,
                peer_display_name=display_name or None,
                last_text=message.text,
                last_at=message.created_at,
                unread_count=0,
            )
            by_peer[peer] = summary
            newest[peer] = ts
        elif newest[peer] < ts:
            newest[peer] = ts
            summary.last_text = message.text
            summary.last_at = message.created_at
            summary.peer_display_name = display_name or summary.peer_display_name

        if message.to_email == me and not message.read:
            summary.unread_count += 1

    conversations = sorted(by_peer.values(), key=lambda s: newest[s.peer_email], reverse=True)
    needle = search.strip().lower()
    if needle:
        conversations = [
            s for s in conversations
            if needle in s.peer_email.lower() or needle in (s.peer_display_name or "").lower()
        ]
    return conversations


def conversation_thread(
    messages: Iterable[FirestoreMessage], me: str, peer: str
) -> List[FirestoreMessage]:
    """Messages exchanged between `me` and `peer`, oldest first."""
    thread = [
        m for m in messages
        if (m.from_email == me and m.to_email == peer) or (m.from_email == peer and m.to_email == me)
    ]
    thread.sort(key=_ts)
    return thread
