"""Peerhelp shared libraries.

This package contains reusable components:
- common: Configuration
- firebase: Firebase Admin and Firestore client setup
- firestore: Data access for posts, votes, comments, messages, users and payments
- media: Image hosting
- models: Firestore document models
"""
