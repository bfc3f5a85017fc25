"""Multipart form construction and encoding for the publish handshake."""

from collections.abc import Iterable, Mapping
import json
import secrets
from typing import Any

from ..models import CompanionDocuments, FormField

_DEFAULT_FILE_CONTENT_TYPE = "application/octet-stream"


def _escape_param(value: str) -> str:
    return value.replace('"', "%22").replace("\r", "%0D").replace("\n", "%0A")


def encode_multipart(
    fields: Iterable[FormField], boundary: str | None = None
) -> tuple[bytes, str]:
    """
    Encodes fields as a multipart/form-data body.
    Returns the body and the matching Content-Type header value.
    """
    boundary = boundary or f"pckgs-form-{secrets.token_hex(16)}"
    delimiter = f"--{boundary}\r\n".encode("ascii")
    body = bytearray()

    for form_field in fields:
        disposition = f'form-data; name="{_escape_param(form_field.name)}"'
        headers = []
        if form_field.is_file:
            filename = form_field.filename or form_field.name
            disposition += f'; filename="{_escape_param(filename)}"'
            headers.append(
                f"Content-Type: {form_field.content_type or _DEFAULT_FILE_CONTENT_TYPE}"
            )
        elif form_field.content_type:
            headers.append(f"Content-Type: {form_field.content_type}")
        headers.insert(0, f"Content-Disposition: {disposition}")

        body += delimiter
        body += ("\r\n".join(headers) + "\r\n\r\n").encode("utf-8")
        value = form_field.value
        body += value if isinstance(value, bytes) else value.encode("utf-8")
        body += b"\r\n"

    body += f"--{boundary}--\r\n".encode("ascii")
    return bytes(body), f"multipart/form-data; boundary={boundary}"


def start_publish_fields(
    checksum: str, package_size: int, metadata: Mapping[str, Any], is_public: bool
) -> list[FormField]:
    return [
        FormField(name="checksumSha256", value=checksum),
        FormField(name="packageSize", value=str(package_size)),
        FormField(
            name="metadata",
            value=json.dumps(metadata, separators=(",", ":"), ensure_ascii=False),
        ),
        FormField(name="isPublic", value="true" if is_public else "false"),
    ]


def complete_publish_fields(
    session_id: str, documents: CompanionDocuments
) -> list[FormField]:
    fields = [FormField(name="sessionId", value=session_id)]
    for document in documents.present():
        fields.append(
            FormField(
                name=document.part_name,
                value=document.content,
                filename=document.filename,
                content_type=document.content_type,
            )
        )
    return fields
