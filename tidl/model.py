"""
Defines the types that flow through the transport layer.

These types are as simple as possible in order to most conveniently consume and
produce instances of them. Everything here is immutable except `RestResponse`,
which is handed to callers and is theirs to do with as they please.
"""

from dataclasses import dataclass, field
from typing import BinaryIO, Generic, Optional, Tuple, TypeVar


T = TypeVar('T')

Header = Tuple[str, str]


@dataclass(frozen=True)
class CacheEntry:
    """
    A cache entry.

    Entries are frozen so that a store can only ever swap one complete entry for
    another. There is no expiry: an entry remains a candidate until a
    conditional request tells us the resource has changed.
    """

    key: str
    """
    The fully resolved URL of the request, query string included.
    """

    validator: str
    """
    The opaque validator (ETag) the origin sent with `body`.
    """

    body: bytes = field(repr=False)
    """
    The raw bytes of the last successful response.
    """

    status: int
    """
    The status code of the last successful response. E.g., 200.
    """


@dataclass(frozen=True)
class OutboundRequest:
    """
    A single request as the network client sees it.
    """

    url: str
    method: str
    body: Optional[bytes] = None
    cache_eligible: bool = True
    headers: Tuple[Header, ...] = ()
    """
    Header pairs in the order they were given. Duplicate names are allowed.
    """


@dataclass
class InboundResult:
    """
    The normalized outcome of one HTTP exchange.

    On a "304 Not Modified" reuse the network client substitutes the cached
    status and body, and sets `from_cache`.
    """

    succeeded: bool
    status: Optional[int] = None
    body: Optional[BinaryIO] = field(default=None, compare=False)
    """
    A file-like object containing the response payload. Absent on transport
    failure.
    """
    validator: Optional[str] = None
    error: Optional[Exception] = None
    from_cache: bool = False
    """
    Whether `body` was served from the cache after a "304 Not Modified".
    """

    def close(self) -> None:
        if self.body is not None:
            self.body.close()


@dataclass
class RestResponse(Generic[T]):
    """
    The envelope returned by `RestClient.get_response`.

    On success `model` is set. On a remote failure (status >= 400) `exception`
    is an `ApplicationError`. When no response was obtained at all, `status` is
    `None` and `exception` carries the transport error.
    """

    model: Optional[T] = None
    exception: Optional[Exception] = None
    status: Optional[int] = None
    validator: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.exception is None and self.status is not None and self.status < 300
