import json
import logging
from pathlib import Path
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional

from .errors import StorageError

LOGGER = logging.getLogger(__name__)
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
MAX_NAME_ATTEMPTS = 100


class BackupFile(NamedTuple):
    name: str
    size: str
    date: datetime


class BackupListing(NamedTuple):
    files: List[BackupFile]
    total: int


class FolderResolution(NamedTuple):
    folder: "BackupFolder"
    # Why the configured folder was not used, if it wasn't
    fallback_reason: Optional[str] = None


def backup_filename(collection: str, when: Optional[datetime] = None) -> str:
    when = when or datetime.now()
    return f"{collection}_backup_{when.strftime(TIMESTAMP_FORMAT)}.json"


class BackupFolder:
    def __init__(self, path):
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.path.name

    def save(self, collection: str, documents: List[Dict],
             when: Optional[datetime] = None) -> Path:
        """Write the documents to a new backup file and return its path.

        An existing file is never replaced: a name already taken gets a
        ``_1``, ``_2``, ... suffix.
        """
        try:
            content = json.dumps(documents, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError("Could not serialize the backup documents", cause=e)
        stem = backup_filename(collection, when)[:-len(".json")]
        for attempt in range(MAX_NAME_ATTEMPTS):
            suffix = f"_{attempt}" if attempt else ""
            target = self.path / f"{stem}{suffix}.json"
            try:
                f = target.open("x", encoding="utf8")
            except FileExistsError:
                continue
            except OSError as e:
                raise StorageError(f"Could not write backup file {target}", cause=e)
            LOGGER.info("Creating backup file %s", target)
            try:
                with f:
                    f.write(content)
            except OSError as e:
                # Don't leave a truncated backup behind
                target.unlink()
                raise StorageError(f"Could not write backup file {target}", cause=e)
            LOGGER.info("Backup created: %s with %d records in folder %s",
                        target.name, len(documents), self.name)
            return target
        raise StorageError(f"Too many backup files named {stem}*.json")

    def load(self, name: str) -> List[Dict]:
        if not name or Path(name).name != name or name in (".", ".."):
            raise StorageError(
                f"Invalid backup file name {name!r}: expected a file name "
                "inside the backup folder.")
        target = self.path / name
        try:
            content = target.read_text(encoding="utf8")
        except OSError as e:
            LOGGER.error("Failed to read backup file %s: %s", target, e)
            raise StorageError(
                f"Could not read the backup file {name}. Verify the name "
                "and the access permissions of the backup folder.",
                cause=e
            )
        if not content.strip():
            raise StorageError(
                f"The backup file {name} is empty or does not contain JSON data.")
        try:
            documents = json.loads(content)
        except ValueError as e:
            raise StorageError(f"The backup file {name} is not valid JSON.", cause=e)
        if not isinstance(documents, list):
            raise StorageError(
                f"The backup file {name} should hold a JSON array of documents.")
        LOGGER.info("File read. Found %d documents to restore.", len(documents))
        return documents

    def list_backups(self, start: int = 0, limit: int = 10) -> BackupListing:
        """Backup files sorted newest first, sliced for paging."""
        try:
            files = [
                BackupFile(
                    name=p.name,
                    size=f"{p.stat().st_size / 1024:.2f} KB",
                    date=datetime.fromtimestamp(p.stat().st_mtime)
                )
                for p in self.path.glob("*.json") if p.is_file()
            ]
        except OSError as e:
            raise StorageError(f"Could not list backup folder {self.path}", cause=e)
        files.sort(key=lambda x: x.date, reverse=True)
        return BackupListing(files[start:start + limit], len(files))


def resolve_backup_folder(folder_name: str, folder_path: Optional[str] = None,
                          base_dir: Optional[str] = None) -> FolderResolution:
    """Use the configured folder if it exists, otherwise find or create
    ``folder_name`` under ``base_dir`` (the working directory by default).
    """
    fallback_reason = None
    if folder_path:
        path = Path(folder_path).expanduser()
        if path.is_dir():
            LOGGER.info("Using backup folder %s", path)
            return FolderResolution(BackupFolder(path))
        fallback_reason = (
            f"Backup folder {folder_path} is invalid or inaccessible. "
            f"Falling back to '{folder_name}'."
        )
        LOGGER.warning(fallback_reason)
    path = Path(base_dir or ".") / folder_name
    try:
        if not path.exists():
            LOGGER.info("Creating backup folder %s", path)
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Could not create backup folder {path}", cause=e)
    return FolderResolution(BackupFolder(path), fallback_reason)
