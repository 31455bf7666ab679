import json
import logging
from pathlib import Path
from typing import Dict

import google.auth.transport.requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from .errors import AuthError

LOGGER = logging.getLogger(__name__)
DATASTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
REQUIRED_KEYS = ("client_email", "private_key", "token_uri")


def load_service_account(source: str) -> Dict:
    """Parse a service-account key given either as a file path or as the
    raw JSON content of the key."""
    if not source:
        raise AuthError("Service account key is not configured.")
    text = source
    if not source.lstrip().startswith("{"):
        path = Path(source).expanduser()
        if not path.is_file():
            raise AuthError(f"Service account key not found: {path}")
        try:
            text = path.read_text(encoding="utf8")
        except OSError as e:
            raise AuthError(f"Could not read service account key {path}", cause=e)
    try:
        info = json.loads(text)
    except ValueError as e:
        raise AuthError("Service account key is not valid JSON.", cause=e)
    if not isinstance(info, dict):
        raise AuthError("Service account key should be a JSON object.")
    missing = [key for key in REQUIRED_KEYS if not info.get(key)]
    if missing:
        raise AuthError(
            "Service account key is missing: " + ", ".join(missing))
    return info


def get_access_token(service_account_info: Dict, session=None) -> str:
    """Exchange a signed service-account JWT for a bearer token.

    The token is valid for an hour and is not refreshed during a run.
    """
    LOGGER.info("Generating access token for %s",
                service_account_info.get("client_email"))
    try:
        credentials = service_account.Credentials.from_service_account_info(
            service_account_info, scopes=[DATASTORE_SCOPE]
        )
        credentials.refresh(
            google.auth.transport.requests.Request(session=session))
    except (GoogleAuthError, ValueError) as e:
        LOGGER.error("Failed to get access token: %s", e)
        raise AuthError(
            "Authentication failed. Check the service account key and its permissions.",
            cause=e
        )
    if not credentials.token:
        raise AuthError("Authentication failed: access token missing in response.")
    LOGGER.info("Access token generated successfully.")
    return credentials.token
