import asyncio
from concurrent.futures import Executor
from dataclasses import dataclass
from functools import partial
from io import BytesIO
import logging
from typing import BinaryIO, Iterable, Optional, Tuple, Type, TypeVar

from .errors import ApplicationError, CacheInconsistency, SerializationError, TransportError
from .model import Header, InboundResult, OutboundRequest, RestResponse
from .models import ErrorModel
from .network import TIMEOUT_HEADER, NetworkClient
from .serializer import JsonSerializer, Serializer
from .util import Query, build_url, form_encoded_body


logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass
class WebStream:
    """
    An open media stream. The caller owns `stream` and must close it.
    """

    stream: BinaryIO
    status: int
    content_type: Optional[str] = None
    content_length: Optional[int] = None

    def close(self) -> None:
        self.stream.close()


class RestClient:
    """
    The entry point used by every endpoint method.

    Turns a logical request into a URL, hands it to the network client and
    classifies the outcome by status: below 300 the body is decoded into the
    requested model, from 400 on it is decoded into an `ErrorModel` and wrapped
    in an `ApplicationError`, and anything in between yields neither.

    The public operations are coroutines. Each exchange, decoding included, runs
    on `executor` (the loop's default executor when `None`), so concurrent calls
    never block the event loop.
    """

    def __init__(self, api_endpoint: Optional[str], user_agent: str,
                 network_client: Optional[NetworkClient] = None,
                 headers: Iterable[Header] = (),
                 serializer: Optional[Serializer] = None,
                 executor: Optional[Executor] = None) -> None:
        self.api_endpoint = api_endpoint or ''
        self.headers: Tuple[Header, ...] = (
            ('User-Agent', user_agent),
            ('Accept-Encoding', 'gzip, deflate'),
        ) + tuple(headers)
        self.__client = network_client if network_client is not None else NetworkClient()
        self.__serializer = serializer if serializer is not None else JsonSerializer()
        self.__executor = executor

    @property
    def network_client(self) -> NetworkClient:
        return self.__client

    @property
    def serializer(self) -> Serializer:
        return self.__serializer

    def set_serializer(self, serializer: Serializer) -> None:
        self.__serializer = serializer

    async def handle(self, model_type: Type[T], path: str, query: Optional[Query] = None,
                     body: Optional[Query] = None, method: str = 'GET', cache_eligible: bool = True,
                     headers: Iterable[Header] = ()) -> Optional[T]:
        """
        Fetch and decode a model.

        @return
          The decoded model, or `None` for a 3xx answer.
        @throws ApplicationError
          If the remote answered with a status of 400 or above.
        @throws TransportError
          If no response was obtained at all.
        """
        response = await self.get_response(model_type, path, query, body, method, cache_eligible, headers)
        if response.exception is not None:
            raise response.exception
        return response.model

    async def get_response(self, model_type: Type[T], path: str, query: Optional[Query] = None,
                           body: Optional[Query] = None, method: str = 'GET', cache_eligible: bool = True,
                           headers: Iterable[Header] = ()) -> RestResponse[T]:
        """
        Like `handle()`, but returns the whole envelope instead of raising.
        """
        request = OutboundRequest(url=build_url(self.api_endpoint, path, query),
                                  method=method,
                                  body=form_encoded_body(body),
                                  cache_eligible=cache_eligible,
                                  headers=self.headers + tuple(headers))
        return await self._run(self._exchange, model_type, request)

    async def get_web_stream(self, url: str) -> Optional[WebStream]:
        """
        Open a media stream without a timeout and without caching.

        Best effort: any failure, including an unsuccessful status, gives `None`.
        """
        request = OutboundRequest(url=url, method='GET', cache_eligible=False,
                                  headers=self.headers + ((TIMEOUT_HEADER, 'none'),))
        try:
            result = await self._run(self.__client.send, request)
        except Exception:
            logger.warning('Could not open a stream for {}'.format(url), exc_info=True)
            return None

        if not result.succeeded or result.body is None or result.status is None or result.status >= 300:
            logger.warning('Stream for {} is unavailable (status {})'.format(url, result.status))
            result.close()
            return None

        return WebStream(stream=result.body, status=result.status, **self._stream_metadata(result.body))

    def close(self) -> None:
        self.__client.close()

    async def _run(self, function, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self.__executor, partial(function, *args))

    def _exchange(self, model_type: Type[T], request: OutboundRequest) -> RestResponse[T]:
        response, from_cache = self._fetch(model_type, request)
        cache = self.__client.cache
        if not isinstance(response.exception, SerializationError):
            return response
        if not from_cache or cache is None:
            if cache is not None and request.cache_eligible:
                # A fresh body that fails to decode must not be revalidated later.
                cache.remove(request.url)
            return response

        # Only a body served from the cache is fetched again, without a validator.
        logger.warning('Could not decode the cached body of {}. Evicting it and fetching it again.'.format(
            request.url))
        cache.remove(request.url)
        response, _ = self._fetch(model_type, request)
        if isinstance(response.exception, SerializationError):
            logger.warning('Could not decode {} after fetching it again.'.format(request.url))
            cache.remove(request.url)
            return RestResponse(exception=CacheInconsistency(request.url, response.exception),
                                status=response.status, validator=response.validator)
        return response

    def _fetch(self, model_type: Type[T], request: OutboundRequest) -> Tuple[RestResponse[T], bool]:
        result = self.__client.send(request)
        try:
            return self._classify(model_type, result), result.from_cache
        finally:
            result.close()

    def _classify(self, model_type: Type[T], result: InboundResult) -> RestResponse[T]:
        if not result.succeeded:
            error = result.error
            if error is None:
                error = TransportError('No response was received')
            return RestResponse(exception=error, status=None)

        status = result.status
        if status < 300:
            content = result.body.read() if result.body is not None else b''
            if not content.strip():
                return RestResponse(status=status, validator=result.validator)
            try:
                model = self.__serializer.decode(BytesIO(content), model_type)
            except SerializationError as e:
                return RestResponse(exception=e, status=status, validator=result.validator)
            return RestResponse(model=model, status=status, validator=result.validator)

        if status >= 400:
            return RestResponse(exception=ApplicationError(self._decode_error(status, result.body)),
                                status=status, validator=result.validator)

        return RestResponse(status=status, validator=result.validator)

    def _decode_error(self, status: int, body: Optional[BinaryIO]) -> ErrorModel:
        if body is not None:
            try:
                error = self.__serializer.decode(body, ErrorModel)
                if error.status is None:
                    error.status = status
                return error
            except SerializationError:
                logger.info('Error payload of a {} response could not be decoded'.format(status))
        return ErrorModel(status=status)

    @staticmethod
    def _stream_metadata(stream: BinaryIO) -> dict:
        headers = getattr(stream, 'headers', None) or {}
        length = headers.get('Content-Length')
        return {
            'content_type': headers.get('Content-Type'),
            'content_length': int(length) if length and length.isdigit() else None,
        }
