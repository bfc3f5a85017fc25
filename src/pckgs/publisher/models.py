import enum
from collections.abc import Iterator, Mapping
from typing import Any, Self

from attrs import define, field

from .crypto import checksum as compute_checksum
from .exceptions import InvalidInputError, RegistryRequestError

# Registry protocol constants
MAX_PACKAGE_SIZE: int = 512 * 1024 * 1024
ARCHIVE_CONTENT_TYPE: str = "application/gzip"
COMPANION_CONTENT_TYPE: str = "text/markdown"
DEFAULT_ROOT_FOLDER: str = "package"
DEFAULT_REGISTRY_URL: str = "https://registry.pckgs.io"
ARCHIVE_SUFFIX: str = ".tar.gz"


def archive_name_for(metadata: Mapping[str, Any]) -> str:
    """Returns the `<name>@<version>.tar.gz` name the registry keys packages by."""
    name = metadata.get("name")
    version = metadata.get("version")
    if not isinstance(name, str) or not name.strip():
        raise InvalidInputError("'name' field in package metadata is missing or invalid.")
    if not isinstance(version, str) or not version.strip():
        raise InvalidInputError(
            "'version' field in package metadata is missing or invalid."
        )
    return f"{name}@{version}{ARCHIVE_SUFFIX}"


@define(frozen=True, slots=True)
class Archive:
    name: str
    data: bytes = field(repr=False)
    _checksum: str | None = field(default=None, init=False, repr=False, eq=False)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def checksum(self) -> str:
        """Hashed on first access and reused afterwards."""
        if self._checksum is None:
            object.__setattr__(self, "_checksum", compute_checksum(self.data))
        return self._checksum


@define(frozen=True, slots=True)
class UploadSession:
    session_id: str
    url: str

    @classmethod
    def from_response(cls, payload: Any) -> Self:
        if not isinstance(payload, Mapping):
            raise RegistryRequestError(
                f"start-publish returned an unexpected payload: {payload!r}"
            )
        session_id = payload.get("sessionId")
        url = payload.get("url")
        if not isinstance(session_id, str) or not session_id:
            raise RegistryRequestError("start-publish response is missing 'sessionId'.")
        if not isinstance(url, str) or not url:
            raise RegistryRequestError("start-publish response is missing 'url'.")
        return cls(session_id=session_id, url=url)


@define(frozen=True, slots=True)
class CompanionDocument:
    part_name: str
    filename: str
    content: bytes = field(repr=False)
    content_type: str = field(default=COMPANION_CONTENT_TYPE)


@define(frozen=True, slots=True)
class CompanionDocuments:
    readme: CompanionDocument | None = None
    license: CompanionDocument | None = None
    changelog: CompanionDocument | None = None

    def present(self) -> Iterator[CompanionDocument]:
        for document in (self.readme, self.license, self.changelog):
            if document is not None:
                yield document


@define(frozen=True, slots=True)
class FormField:
    """
    One part of a multipart form. ``str`` values are plain text fields,
    ``bytes`` values are file parts and carry a filename and content type.
    """

    name: str
    value: str | bytes = field(repr=False)
    filename: str | None = None
    content_type: str | None = None

    @property
    def is_file(self) -> bool:
        return isinstance(self.value, bytes)


class PublishState(enum.Enum):
    VALIDATE = "validate"
    START_PUBLISH = "start-publish"
    TRANSFER = "transfer"
    COMPLETE_PUBLISH = "complete-publish"
    COMPLETED = "completed"
    FAILED = "failed"


@define(frozen=True, slots=True)
class PublishResult:
    archive_name: str
    package_size: int
    checksum: str
    session_id: str
    is_public: bool
