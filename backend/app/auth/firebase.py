"""
Firebase Admin SDK initialization and token verification.
Sign-in itself happens client-side; the API only verifies ID tokens.
"""
import json
import os
import logging
from typing import Optional
import firebase_admin
from firebase_admin import credentials, auth, exceptions
from app.config import settings

logger = logging.getLogger(__name__)


# Global Firebase app instance, created once at startup
_firebase_app: Optional[firebase_admin.App] = None


def _load_credentials(raw: Optional[str]) -> credentials.Base:
    """
    Resolve FIREBASE_CREDENTIALS_JSON.

    Accepts a file path or an inline JSON document. Without a value, falls
    back to application default credentials (gcloud / workload identity).
    """
    if not raw:
        return credentials.ApplicationDefault()

    if os.path.exists(raw):
        logger.info(f"Loaded Firebase credentials from file: {raw}")
        return credentials.Certificate(raw)

    try:
        cred_dict = json.loads(raw)
    except json.JSONDecodeError:
        raise ValueError("FIREBASE_CREDENTIALS_JSON must be a valid file path or JSON string")

    logger.info("Loaded Firebase credentials from JSON string")
    return credentials.Certificate(cred_dict)


def initialize_firebase() -> None:
    """Initialize Firebase Admin SDK. No-op when already initialized."""
    global _firebase_app

    if _firebase_app is not None:
        return

    if not settings.firebase_project_id:
        raise ValueError("FIREBASE_PROJECT_ID must be set")

    _firebase_app = firebase_admin.initialize_app(
        _load_credentials(settings.firebase_credentials_json),
        {"projectId": settings.firebase_project_id}
    )
    logger.info(f"Firebase initialized for project {settings.firebase_project_id}")


def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token and return its claims.

    Returns:
        Decoded claims (uid, email, name, picture, firebase.sign_in_provider, ...)

    Raises:
        RuntimeError: If the SDK was never initialized
        ValueError: If token is invalid, expired, or revoked
    """
    if _firebase_app is None:
        raise RuntimeError("Firebase Admin SDK not initialized. Call initialize_firebase() first.")

    try:
        return auth.verify_id_token(token, app=_firebase_app)
    except ValueError:
        raise
    except exceptions.FirebaseError as e:
        raise ValueError(f"Token verification failed: {str(e)}")
