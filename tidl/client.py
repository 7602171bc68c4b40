from typing import Any, Dict, Iterable, List, Optional

from .cache import FileCache, HttpAwareCache, MemoryCache
from .config import ClientConfiguration
from .models import (DEFAULT_LIMIT, AlbumFilter, AlbumModel, AlbumReviewModel, ArtistBiographyModel, ArtistModel,
                     ContributorModel, CountryModel, CreditLinkModel, JsonList, LinkModel, PlaylistModel,
                     SearchResultModel, SearchType, TrackModel, VideoModel)
from .network import NetworkClient
from .transport import RestClient, WebStream
from .util import format_url


class TidlClient:
    """
    Typed access to the catalog API. Every method is a coroutine.
    """

    def __init__(self, configuration: ClientConfiguration, rest_client: Optional[RestClient] = None) -> None:
        self.configuration = configuration
        self.rest_client = rest_client if rest_client is not None else create_rest_client(configuration)

    def close(self) -> None:
        self.rest_client.close()

    def _country(self, **query: Any) -> Dict[str, Any]:
        query['countryCode'] = self.configuration.country_code
        return query

    def _with_token(self, **query: Any) -> Dict[str, Any]:
        query['token'] = self.configuration.token
        return self._country(**query)

    # region album methods

    async def get_album(self, album_id: int) -> AlbumModel:
        return await self.rest_client.handle(
            AlbumModel, format_url('/albums/{id}', id=album_id), self._with_token())

    async def get_albums(self, album_ids: Iterable[int]) -> List[AlbumModel]:
        return await self.rest_client.handle(
            List[AlbumModel], '/albums', self._with_token(ids=','.join(str(i) for i in album_ids)))

    async def get_similar_albums(self, album_id: int) -> JsonList[AlbumModel]:
        return await self.rest_client.handle(
            JsonList[AlbumModel], format_url('/albums/{id}/similar', id=album_id), self._country())

    async def get_album_tracks(self, album_id: int) -> JsonList[TrackModel]:
        return await self.rest_client.handle(
            JsonList[TrackModel], format_url('/albums/{id}/tracks', id=album_id), self._country())

    async def get_album_tracks_with_credits(self, album_id: int, offset: int = 0,
                                            limit: int = DEFAULT_LIMIT) -> JsonList[CreditLinkModel]:
        return await self.rest_client.handle(
            JsonList[CreditLinkModel], format_url('/albums/{id}/items/credits', id=album_id),
            self._country(replace=True, offset=offset, limit=limit))

    async def get_album_review(self, album_id: int) -> AlbumReviewModel:
        return await self.rest_client.handle(
            AlbumReviewModel, format_url('/albums/{id}/review', id=album_id), self._country())

    # endregion

    # region artist methods

    async def get_artist(self, artist_id: int) -> ArtistModel:
        return await self.rest_client.handle(
            ArtistModel, format_url('/artists/{id}', id=artist_id), self._country())

    async def get_artist_albums(self, artist_id: int, filter: AlbumFilter = AlbumFilter.ALL, offset: int = 0,
                                limit: int = DEFAULT_LIMIT) -> JsonList[AlbumModel]:
        return await self.rest_client.handle(
            JsonList[AlbumModel], format_url('/artists/{id}/albums', id=artist_id),
            self._country(filter=filter, offset=offset, limit=limit))

    async def get_artist_radio(self, artist_id: int, offset: int = 0,
                               limit: int = DEFAULT_LIMIT) -> JsonList[TrackModel]:
        return await self.rest_client.handle(
            JsonList[TrackModel], format_url('/artists/{id}/radio', id=artist_id),
            self._country(offset=offset, limit=limit))

    async def get_similar_artists(self, artist_id: int, offset: int = 0,
                                  limit: int = DEFAULT_LIMIT) -> JsonList[ArtistModel]:
        return await self.rest_client.handle(
            JsonList[ArtistModel], format_url('/artists/{id}/similar', id=artist_id),
            self._country(offset=offset, limit=limit))

    async def get_artist_top_tracks(self, artist_id: int, offset: int = 0,
                                    limit: int = DEFAULT_LIMIT) -> JsonList[TrackModel]:
        return await self.rest_client.handle(
            JsonList[TrackModel], format_url('/artists/{id}/toptracks', id=artist_id),
            self._country(offset=offset, limit=limit))

    async def get_artist_videos(self, artist_id: int, offset: int = 0,
                                limit: int = DEFAULT_LIMIT) -> JsonList[VideoModel]:
        return await self.rest_client.handle(
            JsonList[VideoModel], format_url('/artists/{id}/videos', id=artist_id),
            self._country(offset=offset, limit=limit))

    async def get_artist_biography(self, artist_id: int) -> ArtistBiographyModel:
        return await self.rest_client.handle(
            ArtistBiographyModel, format_url('/artists/{id}/bio', id=artist_id), self._country())

    async def get_artist_links(self, artist_id: int, limit: int = DEFAULT_LIMIT) -> JsonList[LinkModel]:
        return await self.rest_client.handle(
            JsonList[LinkModel], format_url('/artists/{id}/links', id=artist_id), self._country(limit=limit))

    # endregion

    # region country methods

    async def get_country(self) -> CountryModel:
        return await self.rest_client.handle(CountryModel, '/country')

    # endregion

    # region search methods

    async def search_albums(self, query: str, offset: int = 0, limit: int = DEFAULT_LIMIT) -> JsonList[AlbumModel]:
        return await self.rest_client.handle(
            JsonList[AlbumModel], '/search/albums', self._country(query=query, offset=offset, limit=limit))

    async def search_artists(self, query: str, offset: int = 0,
                             limit: int = DEFAULT_LIMIT) -> JsonList[ArtistModel]:
        return await self.rest_client.handle(
            JsonList[ArtistModel], '/search/artists', self._country(query=query, offset=offset, limit=limit))

    async def search_playlists(self, query: str, offset: int = 0,
                               limit: int = DEFAULT_LIMIT) -> JsonList[PlaylistModel]:
        return await self.rest_client.handle(
            JsonList[PlaylistModel], '/search/playlists', self._country(query=query, offset=offset, limit=limit))

    async def search_tracks(self, query: str, offset: int = 0, limit: int = DEFAULT_LIMIT) -> JsonList[TrackModel]:
        return await self.rest_client.handle(
            JsonList[TrackModel], '/search/tracks', self._country(query=query, offset=offset, limit=limit))

    async def search_videos(self, query: str, offset: int = 0, limit: int = DEFAULT_LIMIT) -> JsonList[VideoModel]:
        return await self.rest_client.handle(
            JsonList[VideoModel], '/search/videos', self._country(query=query, offset=offset, limit=limit))

    async def search(self, query: str, types: SearchType, offset: int = 0,
                     limit: int = DEFAULT_LIMIT) -> SearchResultModel:
        return await self.rest_client.handle(
            SearchResultModel, '/search',
            self._country(query=query, types=types.to_query(), offset=offset, limit=limit))

    # endregion

    # region track methods

    async def get_track(self, track_id: int) -> TrackModel:
        return await self.rest_client.handle(
            TrackModel, format_url('/tracks/{id}', id=track_id), self._with_token())

    async def get_track_contributors(self, track_id: int) -> JsonList[ContributorModel]:
        return await self.rest_client.handle(
            JsonList[ContributorModel], format_url('/tracks/{id}/contributors', id=track_id), self._with_token())

    async def get_track_radio(self, track_id: int, limit: int = DEFAULT_LIMIT) -> JsonList[TrackModel]:
        return await self.rest_client.handle(
            JsonList[TrackModel], format_url('/tracks/{id}/radio', id=track_id), self._with_token(limit=limit))

    # endregion

    async def get_web_stream(self, url: str) -> Optional[WebStream]:
        return await self.rest_client.get_web_stream(url)


def create_rest_client(configuration: ClientConfiguration) -> RestClient:
    if configuration.cache_directory is not None:
        store = FileCache(configuration.cache_directory)
    else:
        store = MemoryCache()
    network_client = NetworkClient(HttpAwareCache(store), timeout=configuration.timeout)
    return RestClient(configuration.api_endpoint, configuration.user_agent, network_client)


def create(configuration: Optional[ClientConfiguration] = None) -> TidlClient:
    return TidlClient(configuration if configuration is not None else ClientConfiguration())
