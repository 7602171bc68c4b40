"""
Response shapes of the catalog API.

Field names are the snake_case forms of the camelCase keys the API sends; the
serializer maps between the two. Every field is optional because the API omits
keys freely.
"""

from dataclasses import dataclass, field
from enum import Enum, Flag
from typing import Generic, List, Optional, TypeVar


T = TypeVar('T')

DEFAULT_LIMIT = 9999


class AlbumFilter(Enum):
    ALL = 'ALL'
    EPSANDSINGLES = 'EPSANDSINGLES'
    COMPILATIONS = 'COMPILATIONS'


class SearchType(Flag):
    ARTISTS = 1
    ALBUMS = 2
    TRACKS = 4
    VIDEOS = 8
    PLAYLISTS = 16

    def to_query(self) -> str:
        return ', '.join(member.name for member in type(self) if member in self)


@dataclass
class ErrorModel:
    status: Optional[int] = None
    sub_status: Optional[int] = None
    user_message: Optional[str] = None


@dataclass
class CountryModel:
    country_code: Optional[str] = None


@dataclass
class ArtistModel:
    id: Optional[int] = None
    name: Optional[str] = None
    type: Optional[str] = None
    picture: Optional[str] = None
    url: Optional[str] = None
    popularity: Optional[int] = None


@dataclass
class AlbumModel:
    id: Optional[int] = None
    title: Optional[str] = None
    duration: Optional[int] = None
    number_of_tracks: Optional[int] = None
    number_of_volumes: Optional[int] = None
    release_date: Optional[str] = None
    copyright: Optional[str] = None
    type: Optional[str] = None
    url: Optional[str] = None
    cover: Optional[str] = None
    explicit: Optional[bool] = None
    upc: Optional[str] = None
    popularity: Optional[int] = None
    audio_quality: Optional[str] = None
    artist: Optional[ArtistModel] = None
    artists: List[ArtistModel] = field(default_factory=list)


@dataclass
class TrackModel:
    id: Optional[int] = None
    title: Optional[str] = None
    duration: Optional[int] = None
    track_number: Optional[int] = None
    volume_number: Optional[int] = None
    isrc: Optional[str] = None
    explicit: Optional[bool] = None
    audio_quality: Optional[str] = None
    url: Optional[str] = None
    popularity: Optional[int] = None
    artist: Optional[ArtistModel] = None
    artists: List[ArtistModel] = field(default_factory=list)
    album: Optional[AlbumModel] = None


@dataclass
class VideoModel:
    id: Optional[int] = None
    title: Optional[str] = None
    duration: Optional[int] = None
    image_id: Optional[str] = None
    release_date: Optional[str] = None
    quality: Optional[str] = None
    explicit: Optional[bool] = None
    artist: Optional[ArtistModel] = None
    artists: List[ArtistModel] = field(default_factory=list)


@dataclass
class PlaylistModel:
    uuid: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    number_of_tracks: Optional[int] = None
    number_of_videos: Optional[int] = None
    duration: Optional[int] = None
    url: Optional[str] = None
    image: Optional[str] = None
    type: Optional[str] = None
    public_playlist: Optional[bool] = None


@dataclass
class ArtistBiographyModel:
    source: Optional[str] = None
    last_updated: Optional[str] = None
    text: Optional[str] = None
    summary: Optional[str] = None


@dataclass
class AlbumReviewModel:
    source: Optional[str] = None
    last_updated: Optional[str] = None
    text: Optional[str] = None
    summary: Optional[str] = None


@dataclass
class LinkModel:
    url: Optional[str] = None
    site_name: Optional[str] = None


@dataclass
class ContributorModel:
    name: Optional[str] = None
    role: Optional[str] = None


@dataclass
class CreditModel:
    type: Optional[str] = None
    contributors: List[ContributorModel] = field(default_factory=list)


@dataclass
class CreditLinkModel:
    """
    A track of an album together with everyone credited on it.
    """

    item: Optional[TrackModel] = None
    type: Optional[str] = None
    credits: List[CreditModel] = field(default_factory=list)


@dataclass
class JsonList(Generic[T]):
    """
    One page of a paged listing.
    """

    limit: Optional[int] = None
    offset: Optional[int] = None
    total_number_of_items: Optional[int] = None
    items: List[T] = field(default_factory=list)


@dataclass
class SearchResultModel:
    artists: Optional[JsonList[ArtistModel]] = None
    albums: Optional[JsonList[AlbumModel]] = None
    playlists: Optional[JsonList[PlaylistModel]] = None
    tracks: Optional[JsonList[TrackModel]] = None
    videos: Optional[JsonList[VideoModel]] = None
