from io import BytesIO
from typing import Mapping, Optional
from unittest import TestCase

from ddt import ddt, data, unpack
from mockito import arg_that, mock, unstub, verify, when
import requests
from requests.structures import CaseInsensitiveDict
import urllib3

from tidl.cache import MemoryCache
from tidl.errors import NotModifiedWithoutEntry, TransportError
from tidl.model import CacheEntry, OutboundRequest
from tidl.network import NetworkClient, merge_headers


URL = 'https://api.example.com/v1/artists/42?countryCode=US'


def make_response(status: int, body: bytes = b'', headers: Optional[Mapping[str, str]] = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.headers = CaseInsensitiveDict(headers or {})
    response.raw = BytesIO(body)
    return response


class TestMergeHeaders(TestCase):
    def test_keeps_order(self):
        merged = merge_headers([('User-Agent', 'tidl'), ('Accept', 'application/json')])
        self.assertEqual(['User-Agent', 'Accept'], list(merged))

    def test_duplicates_are_sent_together(self):
        merged = merge_headers([('X-Tag', 'a'), ('Accept', 'application/json'), ('x-tag', 'b')])
        self.assertEqual({'X-Tag': 'a, b', 'Accept': 'application/json'}, merged)


@ddt
class TestNetworkClient(TestCase):
    def setUp(self):
        self.session = mock(requests.Session)
        self.cache = MemoryCache()
        self.client = NetworkClient(self.cache, session=self.session, timeout=10.0)

    def tearDown(self):
        unstub()

    def test_fresh_response_is_cached(self):
        when(self.session).request(...).thenReturn(make_response(200, b'{"id": 42}', {'ETag': 'v1'}))

        result = self.client.send(OutboundRequest(url=URL, method='GET'))

        self.assertTrue(result.succeeded)
        self.assertEqual(200, result.status)
        self.assertEqual('v1', result.validator)
        self.assertEqual(b'{"id": 42}', result.body.read())
        self.assertEqual(CacheEntry(key=URL, validator='v1', body=b'{"id": 42}', status=200), self.cache.lookup(URL))

    def test_first_request_is_unconditional(self):
        when(self.session).request(...).thenReturn(make_response(200, b'{}', {'ETag': 'v1'}))

        self.client.send(OutboundRequest(url=URL, method='GET'))

        verify(self.session).request('GET', URL, data=None,
                                     headers=arg_that(lambda headers: 'If-None-Match' not in headers),
                                     timeout=10.0, stream=False)

    def test_not_modified_is_served_from_cache(self):
        self.cache.upsert(URL, CacheEntry(key=URL, validator='v1', body=b'{"id": 42}', status=200))
        when(self.session).request(...).thenReturn(make_response(304))

        result = self.client.send(OutboundRequest(url=URL, method='GET'))

        verify(self.session).request('GET', URL, data=None,
                                     headers=arg_that(lambda headers: headers.get('If-None-Match') == 'v1'),
                                     timeout=10.0, stream=False)
        self.assertTrue(result.succeeded)
        self.assertEqual(200, result.status)
        self.assertEqual('v1', result.validator)
        self.assertEqual(b'{"id": 42}', result.body.read())
        self.assertTrue(result.from_cache)

    def test_modified_response_replaces_entry(self):
        self.cache.upsert(URL, CacheEntry(key=URL, validator='v1', body=b'old', status=200))
        when(self.session).request(...).thenReturn(make_response(200, b'new', {'ETag': 'v2'}))

        result = self.client.send(OutboundRequest(url=URL, method='GET'))

        self.assertEqual(b'new', result.body.read())
        self.assertEqual(CacheEntry(key=URL, validator='v2', body=b'new', status=200), self.cache.lookup(URL))

    def test_ineligible_request_leaves_cache_alone(self):
        entry = CacheEntry(key=URL, validator='v1', body=b'old', status=200)
        self.cache.upsert(URL, entry)
        when(self.session).request(...).thenReturn(make_response(200, b'new', {'ETag': 'v2'}))

        result = self.client.send(OutboundRequest(url=URL, method='GET', cache_eligible=False))

        verify(self.session).request('GET', URL, data=None,
                                     headers=arg_that(lambda headers: 'If-None-Match' not in headers),
                                     timeout=10.0, stream=False)
        self.assertEqual(b'new', result.body.read())
        self.assertIs(entry, self.cache.lookup(URL))
        self.assertEqual(1, len(self.cache))

    def test_response_without_etag_is_not_cached(self):
        when(self.session).request(...).thenReturn(make_response(200, b'{}'))

        result = self.client.send(OutboundRequest(url=URL, method='GET'))

        self.assertTrue(result.succeeded)
        self.assertIsNone(self.cache.lookup(URL))

    def test_response_without_etag_evicts_previous_entry(self):
        self.cache.upsert(URL, CacheEntry(key=URL, validator='v1', body=b'{"id": 42, "name": "old"}', status=200))
        when(self.session).request(...).thenReturn(make_response(200, b'{"id": 42, "name": "new"}'))

        result = self.client.send(OutboundRequest(url=URL, method='GET'))

        self.assertEqual(b'{"id": 42, "name": "new"}', result.body.read())
        self.assertFalse(result.from_cache)
        self.assertNotIn(URL, self.cache)
        self.assertEqual(0, len(self.cache))

    @data(401, 500, 302)
    def test_unsuccessful_status_is_not_cached(self, status):
        when(self.session).request(...).thenReturn(make_response(status, b'{"status": 1}', {'ETag': 'v1'}))

        result = self.client.send(OutboundRequest(url=URL, method='GET'))

        self.assertTrue(result.succeeded)
        self.assertEqual(status, result.status)
        self.assertEqual(b'{"status": 1}', result.body.read())
        self.assertEqual(0, len(self.cache))

    @data(404, 410)
    def test_gone_entity_evicts_entry(self, status):
        self.cache.upsert(URL, CacheEntry(key=URL, validator='v1', body=b'old', status=200))
        when(self.session).request(...).thenReturn(make_response(status, b'{}'))

        self.client.send(OutboundRequest(url=URL, method='GET'))

        self.assertNotIn(URL, self.cache)

    def test_not_modified_without_entry(self):
        when(self.session).request(...).thenReturn(make_response(304))

        result = self.client.send(OutboundRequest(url=URL, method='GET'))

        self.assertFalse(result.succeeded)
        self.assertIsInstance(result.error, NotModifiedWithoutEntry)
        self.assertEqual(URL, result.error.url)

    @data(
        (requests.ConnectionError('no route to host'),),
        (requests.Timeout('read timed out'),),
        (requests.exceptions.SSLError('bad handshake'),),
    )
    @unpack
    def test_transport_failure_is_returned(self, error):
        when(self.session).request(...).thenRaise(error)

        result = self.client.send(OutboundRequest(url=URL, method='GET'))

        self.assertFalse(result.succeeded)
        self.assertIsNone(result.status)
        self.assertIsNone(result.body)
        self.assertIsInstance(result.error, TransportError)
        self.assertIs(error, result.error.cause)
        self.assertEqual(0, len(self.cache))

    def test_body_is_form_encoded(self):
        when(self.session).request(...).thenReturn(make_response(201, b'{}'))

        self.client.send(OutboundRequest(url=URL, method='POST', body=b'name=x', cache_eligible=False))

        verify(self.session).request(
            'POST', URL, data=b'name=x',
            headers=arg_that(lambda headers: headers.get('Content-Type') == 'application/x-www-form-urlencoded'),
            timeout=10.0, stream=False)

    def test_no_timeout_header_streams_without_cache(self):
        self.cache.upsert(URL, CacheEntry(key=URL, validator='v1', body=b'old', status=200))
        response = make_response(200, headers={'ETag': 'v2'})
        response.raw = urllib3.HTTPResponse(body=BytesIO(b'media'), status=200, preload_content=False)
        when(self.session).request(...).thenReturn(response)

        result = self.client.send(OutboundRequest(url=URL, method='GET', headers=(('X-Timeout', 'none'),)))

        verify(self.session).request(
            'GET', URL, data=None,
            headers=arg_that(lambda headers: 'X-Timeout' not in headers and 'If-None-Match' not in headers),
            timeout=None, stream=True)
        self.assertEqual(b'media', result.body.read())
        self.assertEqual('v1', self.cache.lookup(URL).validator)

    def test_close_leaves_foreign_session_open(self):
        self.client.close()

        verify(self.session, times=0).close()
