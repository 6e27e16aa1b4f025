"""Peerhelp API Service.

This package contains the FastAPI application and related components
for the Peerhelp community forum.

Main components:
- main.py: FastAPI application with endpoints
- models.py: Pydantic models for requests and responses
- feed.py: Feed filtering, shuffling and author labels
- conversations.py: Conversation lists derived from messages
- payments.py: Payment analytics aggregation
- routers/: Posts, comments, messages, users, analytics and upload endpoints
"""

# Avoid importing heavy modules (e.g., FastAPI app) at package import time to
# prevent side effects when tools import `api.*`.
# Intentionally do not re-export runtime objects here.
__all__ = []
