class PublishError(Exception):
    pass


class InvalidInputError(PublishError):
    pass


class PayloadTooLargeError(PublishError):
    pass


class ArchiveIOError(PublishError, OSError):
    pass


class PublishTimeoutError(PublishError):
    pass


class RemoteCallError(PublishError):
    """A remote endpoint answered outside the 2xx range, or could not be reached."""

    def __init__(
        self, message: str, status_code: int | None = None, body: str = ""
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RegistryRequestError(RemoteCallError):
    pass


class TransferError(RemoteCallError):
    pass
