from typing import Optional

from .models import ErrorModel


class TidlError(Exception):
    """
    Base class for every error raised by this library.
    """


class TransportError(TidlError):
    """
    No response was obtained at all: DNS, TLS, timeout or connection failure.

    These are never retried by the transport layer.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.__cause = cause
        self.__cause__ = cause

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause


class NotModifiedWithoutEntry(TransportError):
    """
    The origin answered "304 Not Modified" but nothing was cached for the URL.
    """

    def __init__(self, url: str) -> None:
        super().__init__('Received 304 Not Modified for {} without a cache entry'.format(url))
        self.__url = url

    @property
    def url(self) -> str:
        return self.__url


class ApplicationError(TidlError):
    """
    The remote service answered with a status of 400 or above.
    """

    def __init__(self, error: ErrorModel) -> None:
        super().__init__(error.user_message or 'Request failed with status {}'.format(error.status))
        self.__error = error

    @property
    def error(self) -> ErrorModel:
        return self.__error

    @property
    def status(self) -> Optional[int]:
        return self.__error.status


class SerializationError(TidlError, ValueError):
    """
    A payload could not be decoded into the requested model.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class CacheInconsistency(TidlError):
    """
    A successful body could not be decoded, even after evicting its cache entry
    and fetching it again without a validator.
    """

    def __init__(self, url: str, cause: Optional[BaseException] = None) -> None:
        super().__init__('Could not decode the response body for {}'.format(url))
        self.__url = url
        self.__cause__ = cause

    @property
    def url(self) -> str:
        return self.__url
