import logging
from pathlib import Path
from typing import Dict, NamedTuple

from .auth import get_access_token
from .config import SyncConfig
from .storage import BackupFolder
from .sync import CollectionSync, ImportResult

LOGGER = logging.getLogger(__name__)


class BackupReport(NamedTuple):
    path: Path
    documents: int
    pages: int

    @property
    def status_message(self) -> str:
        return (
            f"Backup created successfully: {self.path.name} with "
            f"{self.documents} records in folder: {self.path.parent.name}."
        )


def run_backup(config: SyncConfig, service_account: Dict, folder: BackupFolder,
               session=None) -> BackupReport:
    """Export the whole collection and write it to one backup file.

    Nothing is written unless every page was read.
    """
    token = get_access_token(service_account)
    sync = CollectionSync(config, token, session=session)
    LOGGER.info("Reading collection %s of project %s",
                config.collection, config.project_id)
    documents = sync.export_documents()
    path = folder.save(config.collection, documents)
    report = BackupReport(path, len(documents), sync.pages_fetched)
    LOGGER.info(report.status_message)
    return report


def run_restore(config: SyncConfig, service_account: Dict, folder: BackupFolder,
                backup_name: str, session=None) -> ImportResult:
    """Upsert every document of a backup file into ``config.collection``,
    which does not have to be the collection the backup was taken from."""
    token = get_access_token(service_account)
    documents = folder.load(backup_name)
    sync = CollectionSync(config, token, session=session)
    LOGGER.info("Restoring %d documents into %s of project %s",
                len(documents), config.collection, config.project_id)
    return sync.import_documents(documents)
