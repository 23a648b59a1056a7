"""Shared Firestore client helper."""
from __future__ import annotations

_firestore_client = None


def ensure_firebase_app():
    """Initialise the default firebase-admin app once and return the module."""
    try:
        import firebase_admin
    except ModuleNotFoundError as exc:  # pragma: no cover
        raise RuntimeError(
            "firebase-admin is required for Firestore features. "
            "Install dependencies or set NOAH_USAGE_FORCE_FILE=1."
        ) from exc

    if not firebase_admin._apps:
        firebase_admin.initialize_app()
    return firebase_admin


def get_firestore_client():
    """Return a cached Firestore client instance."""

    global _firestore_client
    if _firestore_client is not None:
        return _firestore_client

    ensure_firebase_app()
    from firebase_admin import firestore

    _firestore_client = firestore.client()
    return _firestore_client


def user_document(uid: str):
    """Return the ``users/{uid}`` document reference."""
    return get_firestore_client().collection("users").document(uid)
