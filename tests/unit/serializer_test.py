from io import BytesIO
import json
from typing import List
from unittest import TestCase

from ddt import ddt, data

from tidl.errors import SerializationError
from tidl.models import (AlbumFilter, AlbumModel, ArtistModel, ErrorModel, JsonList, SearchResultModel, SearchType,
                         TrackModel)
from tidl.serializer import JsonSerializer


def stream(payload) -> BytesIO:
    return BytesIO(json.dumps(payload).encode('utf-8'))


@ddt
class TestJsonSerializer(TestCase):
    def setUp(self):
        self.serializer = JsonSerializer()

    def test_camel_case_keys(self):
        album = self.serializer.decode(stream({
            'id': 17,
            'title': 'Discovery',
            'numberOfTracks': 14,
            'audioQuality': 'LOSSLESS',
            'somethingNew': 'ignored',
        }), AlbumModel)

        self.assertEqual(AlbumModel(id=17, title='Discovery', number_of_tracks=14, audio_quality='LOSSLESS'), album)

    def test_nested_models(self):
        track = self.serializer.decode(stream({
            'id': 1,
            'artist': {'id': 2, 'name': 'X'},
            'artists': [{'id': 2, 'name': 'X'}, {'id': 3, 'name': 'Y'}],
            'album': {'id': 4, 'artist': None},
        }), TrackModel)

        self.assertEqual(ArtistModel(id=2, name='X'), track.artist)
        self.assertEqual([ArtistModel(id=2, name='X'), ArtistModel(id=3, name='Y')], track.artists)
        self.assertEqual(AlbumModel(id=4), track.album)

    def test_generic_page(self):
        page = self.serializer.decode(stream({
            'limit': 2,
            'offset': 0,
            'totalNumberOfItems': 10,
            'items': [{'id': 1}, {'id': 2}],
        }), JsonList[ArtistModel])

        self.assertEqual(JsonList(limit=2, offset=0, total_number_of_items=10,
                                  items=[ArtistModel(id=1), ArtistModel(id=2)]), page)

    def test_search_result(self):
        result = self.serializer.decode(stream({
            'albums': {'totalNumberOfItems': 1, 'items': [{'id': 9, 'title': 'T'}]},
            'tracks': None,
        }), SearchResultModel)

        self.assertEqual([AlbumModel(id=9, title='T')], result.albums.items)
        self.assertIsNone(result.tracks)
        self.assertIsNone(result.artists)

    def test_top_level_list(self):
        albums = self.serializer.decode(stream([{'id': 1}, {'id': 2}]), List[AlbumModel])

        self.assertEqual([AlbumModel(id=1), AlbumModel(id=2)], albums)

    def test_error_model(self):
        error = self.serializer.decode(stream({'status': 404, 'subStatus': 2001, 'userMessage': 'Not found'}),
                                       ErrorModel)

        self.assertEqual(ErrorModel(status=404, sub_status=2001, user_message='Not found'), error)

    @data(b'', b'<html></html>', b'{"id": ')
    def test_invalid_json(self, payload):
        with self.assertRaises(SerializationError):
            self.serializer.decode(BytesIO(payload), ArtistModel)

    @data([1, 2], 'text', 42)
    def test_wrong_shape(self, payload):
        with self.assertRaises(SerializationError):
            self.serializer.decode(stream(payload), ArtistModel)

    def test_wrong_shape_is_a_value_error(self):
        with self.assertRaises(ValueError):
            self.serializer.decode(stream({'items': 'not a list'}), JsonList[ArtistModel])

    def test_encode(self):
        encoded = self.serializer.encode({'filter': AlbumFilter.ALL, 'artist': ErrorModel(status=1)})

        self.assertEqual({'filter': 'ALL', 'artist': {'status': 1, 'subStatus': None, 'userMessage': None}},
                         json.loads(encoded))


class TestSearchType(TestCase):
    def test_to_query(self):
        self.assertEqual('ARTISTS, TRACKS', (SearchType.TRACKS | SearchType.ARTISTS).to_query())
        self.assertEqual('PLAYLISTS', SearchType.PLAYLISTS.to_query())
