"""Paginated collection export and best-effort import over the Firestore
REST API."""
import logging
from typing import Dict, List, NamedTuple, Optional
from urllib.parse import quote

import requests

from .codec import DOC_ID_FIELD, decode_documents, encode_fields
from .config import SyncConfig
from .errors import MalformedRecordError, RemoteError

LOGGER = logging.getLogger(__name__)


class CollectionPage(NamedTuple):
    documents: List[Dict]
    next_page_token: Optional[str] = None


class ImportFailure(NamedTuple):
    index: int
    doc_id: Optional[str]
    reason: str


class ImportResult(NamedTuple):
    collection: str
    succeeded: int
    total: int
    failures: List[ImportFailure]

    @property
    def status_message(self) -> str:
        return (
            f"Restore complete. {self.succeeded} of {self.total} documents "
            f"restored/updated in '{self.collection}'."
        )


class CollectionSync:
    """Reads and writes one collection, one request at a time."""

    def __init__(self, config: SyncConfig, access_token: str,
                 session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {access_token}"})
        self.pages_fetched = 0

    def fetch_page(self, page_token: Optional[str] = None) -> CollectionPage:
        params = {"pageSize": self.config.page_size}
        if page_token:
            params["pageToken"] = page_token
            LOGGER.debug("Fetching next page with token: %s...", page_token[:15])
        else:
            LOGGER.info("Fetching first page of %s (limit: %d)",
                        self.config.collection, self.config.page_size)
        try:
            res = self.session.get(self.config.collection_url, params=params)
        except requests.RequestException as e:
            raise RemoteError(
                f"Could not reach the Firestore API for '{self.config.collection}'.",
                cause=e
            )
        self.pages_fetched += 1
        if res.status_code != 200:
            LOGGER.error("Pagination failed (HTTP %d): %s",
                         res.status_code, res.text)
            raise RemoteError(
                "Error in Firestore API. Check the service account "
                "permissions (roles/datastore.viewer).",
                res.status_code, res.text
            )
        # An empty body is the last page with nothing left to return
        if not res.text.strip():
            return CollectionPage([], None)
        try:
            payload = res.json()
        except ValueError as e:
            raise RemoteError(
                "Firestore API returned a response that is not JSON.",
                res.status_code, res.text, cause=e
            )
        if not isinstance(payload, dict):
            raise RemoteError(
                "Firestore API returned an unexpected response.",
                res.status_code, res.text
            )
        return CollectionPage(
            payload.get("documents") or [],
            payload.get("nextPageToken") or None
        )

    def export_documents(self) -> List[Dict]:
        """Read every document of the collection, following continuation
        tokens until a page comes back without one.

        Any page failure is raised as is: a partial read must never be
        mistaken for a complete backup.
        """
        documents: List[Dict] = []
        page_token = None
        while True:
            page = self.fetch_page(page_token)
            documents.extend(decode_documents(page.documents))
            page_token = page.next_page_token
            LOGGER.info(
                "Page %d fetched. Documents received: %d. More pages: %s",
                self.pages_fetched, len(page.documents), page_token is not None
            )
            if not page_token:
                break
        LOGGER.info("All %d documents of %s loaded",
                    len(documents), self.config.collection)
        return documents

    def upsert_document(self, doc_id: str, document: Dict) -> None:
        url = f"{self.config.collection_url}/{quote(str(doc_id), safe='')}"
        res = self.session.patch(url, json={"fields": encode_fields(document)})
        if res.status_code != 200:
            raise RemoteError(
                f"Failed to write document {doc_id}", res.status_code, res.text)

    def import_documents(self, documents: List[Dict]) -> ImportResult:
        """Upsert every record into the collection.

        A record that fails (no ``docId``, a non-200 answer or a transport
        error) is logged and skipped; the remaining records are still
        written.
        """
        failures: List[ImportFailure] = []
        succeeded = 0
        for index, record in enumerate(documents):
            doc_id = None
            try:
                doc_id, fields = _split_record(record, index)
                self.upsert_document(doc_id, fields)
                succeeded += 1
            except (RemoteError, MalformedRecordError) as e:
                LOGGER.error("[Error PATCH %s] %s %s",
                             doc_id, e, getattr(e, "body", ""))
                failures.append(ImportFailure(index, doc_id, str(e)))
            except requests.RequestException as e:
                LOGGER.error("[Error PATCH %s] %s", doc_id, e)
                failures.append(ImportFailure(index, doc_id, str(e)))
        result = ImportResult(
            self.config.collection, succeeded, len(documents), failures)
        LOGGER.info(result.status_message)
        return result


def _split_record(record: Dict, index: int):
    if not isinstance(record, dict):
        raise MalformedRecordError(
            f"Record {index} is not a JSON object", index=index)
    fields = dict(record)
    doc_id = fields.pop(DOC_ID_FIELD, None)
    if doc_id in (None, ""):
        raise MalformedRecordError(
            f"Record {index} has no {DOC_ID_FIELD}", index=index)
    return str(doc_id), fields
