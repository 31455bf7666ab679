"""Command line entry point.

Example usage: `python -m fsbackup backup --collection users`
"""
import logging
from typing import Optional

import typer

from .auth import load_service_account
from .backup import run_backup, run_restore
from .config import load_settings
from .errors import FsBackupError
from .storage import resolve_backup_folder

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Back up and restore a Firestore collection as JSON files.")

COLLECTION_OPTION = typer.Option(
    None, "--collection", "-c", help="Collection name (env: COLLECTION_NAME).")
PROJECT_OPTION = typer.Option(
    None, "--project", "-p", help="Firebase project ID (env: FIREBASE_PROJECT_ID).")
KEY_OPTION = typer.Option(
    None, "--key", "-k",
    help="Service account key file or JSON (env: SERVICE_ACCOUNT_KEY_JSON).")
FOLDER_OPTION = typer.Option(
    None, "--folder", "-f", help="Backup folder path (env: BACKUP_FOLDER).")


def _folder(settings):
    resolution = resolve_backup_folder(
        settings.backup_folder_name, settings.backup_folder)
    if resolution.fallback_reason:
        typer.echo(f"Warning: {resolution.fallback_reason}", err=True)
    return resolution.folder


def _fail(e: FsBackupError):
    LOGGER.error("%s", e)
    typer.echo(f"Error: {e}", err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(debug: bool = typer.Option(False, "--debug", help="Verbose logging.")):
    logging.basicConfig(format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                        level=logging.DEBUG if debug else logging.INFO)


@app.command()
def backup(
    collection: Optional[str] = COLLECTION_OPTION,
    project: Optional[str] = PROJECT_OPTION,
    key: Optional[str] = KEY_OPTION,
    folder: Optional[str] = FOLDER_OPTION,
):
    """Export a whole collection into a new backup file."""
    try:
        settings = load_settings(
            project_id=project, collection=collection,
            service_account_key=key, backup_folder=folder)
        report = run_backup(
            settings.sync_config(),
            load_service_account(settings.service_account_key),
            _folder(settings)
        )
    except FsBackupError as e:
        _fail(e)
    typer.echo(report.status_message)


@app.command()
def restore(
    backup_name: str = typer.Argument(
        ..., help="File name of the backup inside the backup folder."),
    collection: Optional[str] = COLLECTION_OPTION,
    project: Optional[str] = PROJECT_OPTION,
    key: Optional[str] = KEY_OPTION,
    folder: Optional[str] = FOLDER_OPTION,
):
    """Write every document of a backup file into a collection.

    Existing documents with the same ID are overwritten; a different
    collection name restores into a new collection.
    """
    try:
        settings = load_settings(
            project_id=project, collection=collection,
            service_account_key=key, backup_folder=folder)
        result = run_restore(
            settings.sync_config(),
            load_service_account(settings.service_account_key),
            _folder(settings),
            backup_name
        )
    except FsBackupError as e:
        _fail(e)
    typer.echo(result.status_message)
    for failure in result.failures:
        typer.echo(f"  failed: #{failure.index} {failure.doc_id or '?'} - {failure.reason}")


@app.command("list")
def list_backups(
    start: int = typer.Option(0, help="Index of the first file to show."),
    limit: int = typer.Option(10, help="Number of files to show."),
    folder: Optional[str] = FOLDER_OPTION,
):
    """List backup files, newest first."""
    try:
        settings = load_settings(backup_folder=folder, require_remote=False)
        listing = _folder(settings).list_backups(start, limit)
    except FsBackupError as e:
        _fail(e)
    for item in listing.files:
        typer.echo(f"{item.date.strftime('%Y-%m-%d %H:%M:%S')}  {item.size:>12}  {item.name}")
    typer.echo(f"Showing {len(listing.files)} of {listing.total} backups.")


if __name__ == "__main__":
    app()
