"""Tests for multipart form construction and encoding."""

import json

import httpx

from pckgs.publisher.models import CompanionDocument, CompanionDocuments, FormField
from pckgs.publisher.registry.form import (
    complete_publish_fields,
    encode_multipart,
    start_publish_fields,
)

from conftest import parse_multipart, part_text


def _as_request(fields: list[FormField]) -> httpx.Request:
    body, content_type = encode_multipart(fields)
    return httpx.Request(
        "POST", "https://registry.test/", content=body, headers={"Content-Type": content_type}
    )


def test_encode_text_and_file_parts() -> None:
    request = _as_request(
        [
            FormField(name="sessionId", value="abc"),
            FormField(
                name="readme",
                value=b"# hi\n\nbody",
                filename="README.md",
                content_type="text/markdown",
            ),
        ]
    )
    parts = parse_multipart(request)

    assert part_text(parts["sessionId"]) == "abc"
    assert parts["sessionId"].get_filename() is None
    assert parts["readme"].get_filename() == "README.md"
    assert parts["readme"].get_content_type() == "text/markdown"
    assert parts["readme"].get_payload(decode=True) == b"# hi\n\nbody"


def test_encode_uses_given_boundary() -> None:
    body, content_type = encode_multipart([FormField(name="a", value="1")], boundary="XYZ")
    assert content_type == "multipart/form-data; boundary=XYZ"
    assert body == (
        b"--XYZ\r\n"
        b'Content-Disposition: form-data; name="a"\r\n'
        b"\r\n"
        b"1\r\n"
        b"--XYZ--\r\n"
    )


def test_encode_escapes_quotes_in_names() -> None:
    body, _ = encode_multipart([FormField(name='we"ird', value="x")], boundary="B")
    assert b'name="we%22ird"' in body


def test_start_publish_fields() -> None:
    metadata = {"name": "demo", "version": "1.0.0", "author": {"name": "Zoë"}}
    request = _as_request(start_publish_fields("c2hhMjU2", 1234, metadata, is_public=True))
    parts = parse_multipart(request)

    assert list(parts) == ["checksumSha256", "packageSize", "metadata", "isPublic"]
    assert part_text(parts["checksumSha256"]) == "c2hhMjU2"
    assert part_text(parts["packageSize"]) == "1234"
    assert json.loads(part_text(parts["metadata"])) == metadata
    assert part_text(parts["isPublic"]) == "true"


def test_start_publish_fields_private() -> None:
    fields = start_publish_fields("x", 1, {"name": "d", "version": "1"}, is_public=False)
    assert fields[-1] == FormField(name="isPublic", value="false")


def test_complete_publish_fields_only_session_when_no_documents() -> None:
    fields = complete_publish_fields("sess", CompanionDocuments())
    assert fields == [FormField(name="sessionId", value="sess")]


def test_complete_publish_fields_attach_present_documents() -> None:
    documents = CompanionDocuments(
        license=CompanionDocument(part_name="license", filename="LICENSE.md", content=b"MIT"),
    )
    request = _as_request(complete_publish_fields("sess", documents))
    parts = parse_multipart(request)

    assert set(parts) == {"sessionId", "license"}
    assert parts["license"].get_filename() == "LICENSE.md"
    assert parts["license"].get_content_type() == "text/markdown"
    assert parts["license"].get_payload(decode=True) == b"MIT"
