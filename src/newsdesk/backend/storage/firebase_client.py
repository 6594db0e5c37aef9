#!/usr/bin/env python3
"""Firebase Admin initialisation from environment credentials."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

import firebase_admin
from firebase_admin import credentials, firestore

logger = logging.getLogger(__name__)


def load_service_account(value: str) -> Dict[str, Any]:
    """Service-account info from a JSON file path or an inline JSON string."""
    value = value.strip()
    try:
        if not value.startswith('{') and Path(value).is_file():
            with open(value, 'r', encoding='utf-8') as f:
                info = json.load(f)
        else:
            info = json.loads(value)
    except (OSError, ValueError) as e:
        raise RuntimeError(f"FIREBASE_CREDENTIALS is neither a readable file nor JSON: {e}") from e
    if not isinstance(info, dict):
        raise RuntimeError("FIREBASE_CREDENTIALS must hold a service-account object")
    return info


def init_firestore() -> Any:
    """
    Return a Firestore client, initialising the default Firebase app once.

    Credentials are taken from FIREBASE_CREDENTIALS (a service-account file path or inline JSON), then
    from FIREBASE_PROJECT_ID / FIREBASE_CLIENT_EMAIL / FIREBASE_PRIVATE_KEY, then
    application default credentials.
    """
    if firebase_admin._apps:
        return firestore.client()

    creds = os.getenv('FIREBASE_CREDENTIALS') or os.getenv('FIREBASE_SERVICE_ACCOUNT')
    if creds:
        try:
            cred = credentials.Certificate(load_service_account(creds))
        except (ValueError, TypeError) as e:
            raise RuntimeError(f"FIREBASE_CREDENTIALS is not a valid service account: {e}") from e
        firebase_admin.initialize_app(cred)
        logger.info("Firebase initialized from FIREBASE_CREDENTIALS")
        return firestore.client()

    project_id = os.getenv('FIREBASE_PROJECT_ID')
    client_email = os.getenv('FIREBASE_CLIENT_EMAIL')
    private_key = os.getenv('FIREBASE_PRIVATE_KEY', '').replace('\\n', '\n')
    if project_id and client_email and private_key:
        cred = credentials.Certificate({
            'type': 'service_account',
            'project_id': project_id,
            'client_email': client_email,
            'private_key': private_key,
            'token_uri': 'https://oauth2.googleapis.com/token',
        })
        firebase_admin.initialize_app(cred)
        logger.info("Firebase initialized from individual env vars")
        return firestore.client()

    firebase_admin.initialize_app(options={'projectId': project_id} if project_id else None)
    logger.info("Firebase initialized with default credentials")
    return firestore.client()
