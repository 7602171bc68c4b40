from .client import TidlClient, create
from .config import ClientConfiguration
from .errors import ApplicationError, CacheInconsistency, NotModifiedWithoutEntry, TidlError, TransportError
from .model import RestResponse
from .transport import RestClient, WebStream

__all__ = [
    'ApplicationError',
    'CacheInconsistency',
    'ClientConfiguration',
    'NotModifiedWithoutEntry',
    'RestClient',
    'RestResponse',
    'TidlClient',
    'TidlError',
    'TransportError',
    'WebStream',
    'create',
]
