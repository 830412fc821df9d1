"""Error taxonomy shared by the client, the validators and the lifecycle rules."""

from typing import Iterable, List


class LibraryError(Exception):
    """Base class for every failure raised by this package."""
    pass


class NotFound(LibraryError, LookupError):
    """The requested record does not exist on the backend."""
    pass


class ValidationRejected(LibraryError, ValueError):
    """Input was rejected, either before submission or by the backend.

    All violations are carried together in ``errors``.
    """

    def __init__(self, errors: Iterable[str]):
        self.errors: List[str] = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed")


class ExtensionDenied(LibraryError):
    """The borrowing already runs for the maximum duration."""
    pass


class NetworkFailure(LibraryError):
    """Transport error, unexpected status code or undecodable response."""
    pass
