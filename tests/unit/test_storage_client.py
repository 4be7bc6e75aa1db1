from __future__ import annotations

import json
from datetime import datetime, timedelta, UTC
from uuid import UUID

import httpx
import pytest

from rmcloud.errors import MalformedServiceResponse, PreconditionError, ServiceRejected
from rmcloud.models import UploadDirections, parse_rfc3339
from rmcloud.storage import StorageClient, parse_directions

ENDPOINT = "https://doc.example.com"


def _directions(**overrides) -> UploadDirections:
    data = {
        "ID": "abc",
        "Version": 1,
        "Message": "",
        "Success": True,
        "BlobURLPut": "https://blob.example.com/put?sig=secret",
        "BlobURLPutExpires": (datetime.now(UTC) + timedelta(minutes=5)).isoformat(),
    }
    data.update(overrides)
    return UploadDirections.model_validate(data)


def test_request_slot_puts_upload_request(recorder):
    answer = {
        "ID": "doc-1",
        "Version": 1,
        "Message": "",
        "Success": True,
        "BlobURLPut": "https://blob.example.com/doc-1",
        "BlobURLPutExpires": "2030-01-01T00:00:00Z",
    }
    rec = recorder(lambda _: httpx.Response(200, json=answer))

    with StorageClient(client=rec.client()) as storage:
        directions = storage.request_slot(ENDPOINT + "/", "session")

    req = rec.requests[0]
    assert req.method == "PUT"
    assert str(req.url) == "https://doc.example.com/json/2/upload/request"
    assert req.headers["authorization"] == "Bearer session"
    body = json.loads(req.content)
    assert set(body) == {"ID", "Type", "Version"}
    UUID(body["ID"])
    assert body["Type"] == "DocumentType"
    assert body["Version"] == 1

    assert directions.document_id == "doc-1"
    assert directions.write_url == "https://blob.example.com/doc-1"
    assert directions.success is True


def test_request_slot_accepts_single_element_array(recorder):
    rec = recorder(lambda _: httpx.Response(200, json=[{"ID": "x", "BlobURLPut": "https://b/x"}]))

    with StorageClient(client=rec.client()) as storage:
        directions = storage.request_slot(ENDPOINT, "session")

    assert directions.document_id == "x"


@pytest.mark.parametrize(
    "body",
    [
        "not json",
        "[]",
        '[{"ID": "a", "BlobURLPut": "u"}, {"ID": "b", "BlobURLPut": "v"}]',
        '"just a string"',
        '{"ID": "only-id"}',
        '{"BlobURLPut": "https://b/x"}',
        '{"ID": "", "BlobURLPut": ""}',
        '{"ID": "abc", "BlobURLPut": ""}',
    ],
)
def test_malformed_directions_keep_raw_body(body):
    with pytest.raises(MalformedServiceResponse) as ei:
        parse_directions(body)

    assert ei.value.raw_body == body


def test_request_slot_rejected(recorder):
    rec = recorder(lambda _: httpx.Response(401, text="unauthorized"))

    with StorageClient(client=rec.client()) as storage:
        with pytest.raises(ServiceRejected) as ei:
            storage.request_slot(ENDPOINT, "session")

    assert ei.value.status == 401


def test_transfer_puts_archive_bytes(recorder):
    rec = recorder(lambda _: httpx.Response(200))
    directions = _directions()

    with StorageClient(client=rec.client()) as storage:
        storage.transfer(b"PK\x03\x04zipdata", directions, "session")

    req = rec.requests[0]
    assert req.method == "PUT"
    assert str(req.url) == "https://blob.example.com/put?sig=secret"
    assert req.headers["authorization"] == "Bearer session"
    assert req.content == b"PK\x03\x04zipdata"


def test_transfer_rejected_hides_signed_query(recorder):
    rec = recorder(lambda _: httpx.Response(403, text="denied"))

    with StorageClient(client=rec.client()) as storage:
        with pytest.raises(ServiceRejected) as ei:
            storage.transfer(b"zip", _directions(), "session")

    assert ei.value.status == 403
    assert "sig=secret" not in str(ei.value)


def test_transfer_refuses_unsuccessful_slot(recorder):
    rec = recorder(lambda _: httpx.Response(200))

    with StorageClient(client=rec.client()) as storage:
        with pytest.raises(PreconditionError, match="quota"):
            storage.transfer(b"zip", _directions(Success=False, Message="quota exceeded"), "s")

    assert rec.requests == []


def test_transfer_refuses_expired_slot(recorder):
    rec = recorder(lambda _: httpx.Response(200))
    directions = _directions(BlobURLPutExpires="2020-01-01T00:00:00.123456789Z")

    with StorageClient(client=rec.client()) as storage:
        with pytest.raises(PreconditionError, match="expired"):
            storage.transfer(b"zip", directions, "s")

    assert rec.requests == []


def test_transfer_with_unparseable_expiry_proceeds(recorder, caplog):
    rec = recorder(lambda _: httpx.Response(200))

    with StorageClient(client=rec.client()) as storage:
        with caplog.at_level("WARNING"):
            storage.transfer(b"zip", _directions(BlobURLPutExpires="tomorrow-ish"), "s")

    assert len(rec.requests) == 1
    assert "tomorrow-ish" in caplog.text


def test_register_puts_metadata(recorder):
    rec = recorder(lambda _: httpx.Response(200))
    directions = _directions(ID="abc")

    with StorageClient(client=rec.client()) as storage:
        metadata = storage.register(ENDPOINT, "session", directions, "MyDoc")

    req = rec.requests[0]
    assert req.method == "PUT"
    assert str(req.url) == "https://doc.example.com/json/2/upload/request"
    assert req.headers["authorization"] == "Bearer session"
    body = json.loads(req.content)
    assert body["parent"] == "abc"
    assert body["VissibleName"] == "MyDoc"
    assert body["Type"] == "DocumentType"
    assert body["Version"] == 1
    assert body["ID"] != "abc"
    assert body["ID"] == metadata.id
    modified = parse_rfc3339(body["ModifiedClient"])
    assert modified is not None
    assert abs((datetime.now(UTC) - modified).total_seconds()) < 60


def test_register_rejected(recorder):
    rec = recorder(lambda _: httpx.Response(500, text="boom"))

    with StorageClient(client=rec.client()) as storage:
        with pytest.raises(ServiceRejected) as ei:
            storage.register(ENDPOINT, "session", _directions(), "MyDoc")

    assert ei.value.status == 500
