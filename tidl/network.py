from io import BytesIO
import logging
from typing import Dict, Iterable, Optional

import requests

from .cache import Cache
from .errors import NotModifiedWithoutEntry, TransportError
from .model import CacheEntry, Header, InboundResult, OutboundRequest


logger = logging.getLogger(__name__)

TIMEOUT_HEADER = 'X-Timeout'
"""
A request header that is never sent. `X-Timeout: none` disables the timeout and
streams the body, for long-lived media fetches.
"""

NOT_MODIFIED = 304

_EVICTING_STATUSES = {404, 410}


def merge_headers(headers: Iterable[Header]) -> Dict[str, str]:
    """
    Collapse header pairs into the single-valued mapping `requests` expects.

    Repeated names are kept by joining their values with ", ", which is how a
    list-valued HTTP header is written on one line. Names are compared without
    regard to case.
    """
    merged: Dict[str, str] = {}
    names: Dict[str, str] = {}
    for name, value in headers:
        lowered = name.lower()
        if lowered in names:
            first = names[lowered]
            merged[first] = '{}, {}'.format(merged[first], value)
        else:
            names[lowered] = name
            merged[name] = value
    return merged


class NetworkClient:
    """
    Performs exactly one HTTP exchange per `send()`, folding in conditional
    caching.

    Cache-eligible requests carry `If-None-Match` when an entry exists. A
    "304 Not Modified" answer is turned back into the cached response, and
    every other successful answer replaces the entry.
    """

    def __init__(self, cache: Optional[Cache] = None, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = 30.0) -> None:
        self.cache = cache
        self.timeout = timeout
        self.__owns_session = session is None
        self.__session = session if session is not None else requests.Session()

    def send(self, request: OutboundRequest) -> InboundResult:
        """
        Send `request`. Never raises for network failures; those are carried in
        the returned result instead.
        """
        headers = merge_headers(request.headers)
        no_timeout = self._pop_no_timeout(headers)
        use_cache = self.cache is not None and request.cache_eligible and not no_timeout

        entry = None
        if use_cache:
            entry = self.cache.lookup(request.url)
            if entry is not None:
                headers['If-None-Match'] = entry.validator

        if request.body is not None and not any(name.lower() == 'content-type' for name in headers):
            headers['Content-Type'] = 'application/x-www-form-urlencoded'

        try:
            response = self.__session.request(request.method, request.url,
                                              data=request.body,
                                              headers=headers,
                                              timeout=None if no_timeout else self.timeout,
                                              stream=no_timeout)
        except requests.RequestException as e:
            logger.warning('{} {} failed before a response was received: {}'.format(request.method, request.url, e))
            return InboundResult(succeeded=False,
                                 error=TransportError('{} {} failed: {}'.format(request.method, request.url, e), e))

        if response.status_code == NOT_MODIFIED and use_cache:
            response.close()
            if entry is None:
                logger.warning('Received 304 Not Modified for {} without a cache entry'.format(request.url))
                return InboundResult(succeeded=False, status=NOT_MODIFIED,
                                     error=NotModifiedWithoutEntry(request.url))
            logger.info('Not modified. Serving {} from the cache.'.format(request.url))
            return InboundResult(succeeded=True,
                                 status=entry.status,
                                 body=BytesIO(entry.body),
                                 validator=entry.validator,
                                 from_cache=True)

        validator = response.headers.get('ETag')
        if no_timeout:
            response.raw.decode_content = True
            return InboundResult(succeeded=True, status=response.status_code,
                                 body=response.raw, validator=validator)

        try:
            content = response.content
        except requests.RequestException as e:
            logger.warning('Reading the body of {} failed: {}'.format(request.url, e))
            return InboundResult(succeeded=False,
                                 error=TransportError('Reading {} failed: {}'.format(request.url, e), e))

        if use_cache:
            self._update_cache(request.url, response.status_code, validator, content)

        return InboundResult(succeeded=True, status=response.status_code,
                             body=BytesIO(content), validator=validator)

    def close(self) -> None:
        if self.__owns_session:
            self.__session.close()
        if self.cache is not None:
            self.cache.close()

    def _update_cache(self, url: str, status: int, validator: Optional[str], content: bytes) -> None:
        if 200 <= status < 300:
            if validator:
                self.cache.upsert(url, CacheEntry(key=url, validator=validator, body=content, status=status))
            else:
                logger.info('Not caching {}. The response carries no ETag, evicting any previous entry.'.format(url))
                self.cache.remove(url)
        elif status in _EVICTING_STATUSES:
            logger.info('{} answered {}. Evicting its cache entry.'.format(url, status))
            self.cache.remove(url)

    @staticmethod
    def _pop_no_timeout(headers: Dict[str, str]) -> bool:
        for name in list(headers):
            if name.lower() == TIMEOUT_HEADER.lower():
                return headers.pop(name).strip().lower() == 'none'
        return False
