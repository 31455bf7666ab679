import pytest
import requests

from fsbackup.config import SyncConfig
from fsbackup.errors import RemoteError
from fsbackup.sync import CollectionSync

CONFIG = SyncConfig(project_id="proj", collection="users", page_size=2)
BASE = "https://firestore.googleapis.com/v1/projects/proj/databases/(default)/documents"


def _response(mocker, status_code=200, payload=None, text=None):
    res = mocker.MagicMock()
    res.status_code = status_code
    res.text = text if text is not None else ("{}" if payload is None else "json")
    res.json.return_value = payload
    return res


def _doc(doc_id, **fields):
    return {
        "name": f"projects/proj/databases/(default)/documents/users/{doc_id}",
        "fields": {k: {"stringValue": v} for k, v in fields.items()},
    }


def test_bearer_header(mocker):
    session = mocker.MagicMock()
    session.headers = {}
    CollectionSync(CONFIG, "tok", session=session)
    assert session.headers["Authorization"] == "Bearer tok"


def test_pagination_three_pages(mocker):
    session = mocker.MagicMock()
    session.get.side_effect = [
        _response(mocker, payload={"documents": [_doc("a", x="1"), _doc("b", x="2")],
                                   "nextPageToken": "t1"}),
        _response(mocker, payload={"documents": [_doc("c", x="3")],
                                   "nextPageToken": "t2"}),
        _response(mocker, payload={"documents": [_doc("d", x="4")]}),
    ]
    sync = CollectionSync(CONFIG, "tok", session=session)
    docs = sync.export_documents()
    assert session.get.call_count == 3
    assert sync.pages_fetched == 3
    assert [d["docId"] for d in docs] == ["a", "b", "c", "d"]
    assert docs[0] == {"x": "1", "docId": "a"}
    calls = session.get.call_args_list
    assert calls[0][0][0] == f"{BASE}/users"
    assert calls[0][1]["params"] == {"pageSize": 2}
    assert calls[1][1]["params"] == {"pageSize": 2, "pageToken": "t1"}
    assert calls[2][1]["params"] == {"pageSize": 2, "pageToken": "t2"}


def test_empty_collection(mocker):
    session = mocker.MagicMock()
    session.get.return_value = _response(mocker, payload={})
    sync = CollectionSync(CONFIG, "tok", session=session)
    assert sync.export_documents() == []
    assert session.get.call_count == 1


def test_empty_body_ends_export(mocker):
    session = mocker.MagicMock()
    session.get.return_value = _response(mocker, text="")
    sync = CollectionSync(CONFIG, "tok", session=session)
    assert sync.export_documents() == []
    session.get.return_value.json.assert_not_called()


def test_page_failure_is_fatal(mocker):
    session = mocker.MagicMock()
    session.get.side_effect = [
        _response(mocker, payload={"documents": [_doc("a")], "nextPageToken": "t1"}),
        _response(mocker, status_code=403, text="PERMISSION_DENIED"),
    ]
    sync = CollectionSync(CONFIG, "tok", session=session)
    with pytest.raises(RemoteError) as excinfo:
        sync.export_documents()
    assert excinfo.value.status_code == 403
    assert excinfo.value.body == "PERMISSION_DENIED"


def test_page_transport_failure(mocker):
    session = mocker.MagicMock()
    session.get.side_effect = requests.ConnectionError("boom")
    sync = CollectionSync(CONFIG, "tok", session=session)
    with pytest.raises(RemoteError) as excinfo:
        sync.fetch_page()
    assert excinfo.value.status_code is None


def test_upsert_request(mocker):
    session = mocker.MagicMock()
    session.patch.return_value = _response(mocker)
    sync = CollectionSync(CONFIG, "tok", session=session)
    result = sync.import_documents([{"docId": "a b", "n": 1}])
    assert result.succeeded == 1
    args, kwargs = session.patch.call_args
    assert args[0] == f"{BASE}/users/a%20b"
    assert kwargs["json"] == {"fields": {"n": {"integerValue": "1"}}}


def test_best_effort_import(mocker):
    session = mocker.MagicMock()
    session.patch.side_effect = [
        _response(mocker),
        _response(mocker),
        _response(mocker, status_code=500, text="INTERNAL"),
        _response(mocker),
        _response(mocker),
    ]
    records = [{"docId": str(i), "v": i} for i in range(1, 6)]
    sync = CollectionSync(CONFIG, "tok", session=session)
    result = sync.import_documents(records)
    assert session.patch.call_count == 5
    assert result.succeeded == 4
    assert result.total == 5
    assert len(result.failures) == 1
    assert result.failures[0].doc_id == "3"
    assert result.status_message == \
        "Restore complete. 4 of 5 documents restored/updated in 'users'."
    # input records are left untouched
    assert records[0] == {"docId": "1", "v": 1}


def test_record_without_doc_id_is_skipped(mocker):
    session = mocker.MagicMock()
    session.patch.return_value = _response(mocker)
    sync = CollectionSync(CONFIG, "tok", session=session)
    result = sync.import_documents([{"v": 1}, {"docId": "b", "v": 2}, "junk"])
    assert session.patch.call_count == 1
    assert result.succeeded == 1
    assert [f.index for f in result.failures] == [0, 2]
    assert "docId" in result.failures[0].reason


def test_upsert_transport_failure_continues(mocker):
    session = mocker.MagicMock()
    session.patch.side_effect = [requests.Timeout("slow"), _response(mocker)]
    sync = CollectionSync(CONFIG, "tok", session=session)
    result = sync.import_documents([{"docId": "a"}, {"docId": "b"}])
    assert result.succeeded == 1
    assert result.failures[0].doc_id == "a"


def test_null_documents_page(mocker):
    session = mocker.MagicMock()
    session.get.return_value = _response(mocker, payload={"documents": None})
    sync = CollectionSync(CONFIG, "tok", session=session)
    assert sync.export_documents() == []


def test_non_object_page_is_remote_error(mocker):
    session = mocker.MagicMock()
    session.get.return_value = _response(mocker, payload=["not", "a", "page"])
    sync = CollectionSync(CONFIG, "tok", session=session)
    with pytest.raises(RemoteError):
        sync.export_documents()
