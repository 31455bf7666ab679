import os
from typing import NamedTuple, Optional

from .errors import ConfigError

FIRESTORE_API_URL = "https://firestore.googleapis.com/v1"
DEFAULT_PAGE_SIZE = 1000
DEFAULT_FOLDER_NAME = "Firestore Backups"


class SyncConfig(NamedTuple):
    project_id: str
    collection: str
    page_size: int = DEFAULT_PAGE_SIZE
    api_url: str = FIRESTORE_API_URL

    @property
    def documents_url(self) -> str:
        return (
            f"{self.api_url}/projects/{self.project_id}"
            "/databases/(default)/documents"
        )

    @property
    def collection_url(self) -> str:
        return f"{self.documents_url}/{self.collection}"


class Settings(NamedTuple):
    project_id: str
    collection: str
    service_account_key: str
    backup_folder: Optional[str] = None
    backup_folder_name: str = DEFAULT_FOLDER_NAME
    page_size: int = DEFAULT_PAGE_SIZE

    def sync_config(self) -> SyncConfig:
        return SyncConfig(
            project_id=self.project_id,
            collection=self.collection,
            page_size=self.page_size
        )


def _pick(override, env_name, default=None):
    if override not in (None, ""):
        return override
    return os.environ.get(env_name, default) or default


def load_settings(
        project_id: Optional[str] = None,
        collection: Optional[str] = None,
        service_account_key: Optional[str] = None,
        backup_folder: Optional[str] = None,
        backup_folder_name: Optional[str] = None,
        page_size: Optional[int] = None,
        require_remote: bool = True) -> Settings:
    """Build the run settings from explicit values, falling back to
    environment variables.

    Environment variables:

    + FIREBASE_PROJECT_ID
    + COLLECTION_NAME
    + SERVICE_ACCOUNT_KEY_JSON -- path to the key file or the key JSON itself
    + BACKUP_FOLDER -- path of the backup folder (optional)
    + BACKUP_FOLDER_NAME -- folder created when BACKUP_FOLDER is unusable
    + PAGE_SIZE
    """
    settings = Settings(
        project_id=_pick(project_id, "FIREBASE_PROJECT_ID", ""),
        collection=_pick(collection, "COLLECTION_NAME", ""),
        service_account_key=_pick(
            service_account_key, "SERVICE_ACCOUNT_KEY_JSON", ""),
        backup_folder=_pick(backup_folder, "BACKUP_FOLDER"),
        backup_folder_name=_pick(
            backup_folder_name, "BACKUP_FOLDER_NAME", DEFAULT_FOLDER_NAME),
        page_size=_parse_page_size(_pick(page_size, "PAGE_SIZE", DEFAULT_PAGE_SIZE))
    )
    if require_remote:
        missing = [
            name for name, value in (
                ("FIREBASE_PROJECT_ID", settings.project_id),
                ("COLLECTION_NAME", settings.collection),
                ("SERVICE_ACCOUNT_KEY_JSON", settings.service_account_key)
            ) if not value
        ]
        if missing:
            raise ConfigError(
                "Configuration error: missing " + ", ".join(missing))
    return settings


def _parse_page_size(value) -> int:
    try:
        page_size = int(value)
        if page_size < 1:
            raise ValueError()
    except (TypeError, ValueError):
        raise ConfigError(f"PAGE_SIZE should be a positive integer, got {value!r}")
    return page_size
