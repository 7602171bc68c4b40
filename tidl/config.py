from dataclasses import dataclass
from pathlib import Path
from typing import Optional


DEFAULT_API_ENDPOINT = 'https://api.tidalhifi.com/v1'
DEFAULT_USER_AGENT = 'tidl/0.1.0'


@dataclass(frozen=True)
class ClientConfiguration:
    """
    Everything needed to build a client.
    """

    api_endpoint: str = DEFAULT_API_ENDPOINT
    """
    The base URL that every endpoint path is appended to.
    """

    user_agent: str = DEFAULT_USER_AGENT

    token: Optional[str] = None
    """
    The application token sent with album and track lookups.
    """

    country_code: str = 'US'
    """
    The catalog region, sent with every request as `countryCode`.
    """

    timeout: Optional[float] = 30.0
    """
    Seconds to wait for a response. `None` waits forever. Media streams never
    time out regardless of this setting.
    """

    cache_directory: Optional[Path] = None
    """
    When set, responses are cached below this directory and survive the process.
    Otherwise they are kept in memory.
    """
