from abc import ABC, abstractmethod
import hashlib
import json
import logging
import os
from pathlib import Path
import tempfile
import threading
from typing import Dict, Optional

from .model import CacheEntry
from .util import clamp


logger = logging.getLogger(__name__)


class Cache(ABC):
    """
    An abstraction of a response cache.

    A response cache has a relatively narrow scope: to remember the last
    successful body and its validator for a URL, such that a conditional request
    can later confirm it is still current. Entries never expire on their own;
    the network client discovers staleness by revalidating.

    Implementations must be safe to share between threads, and must never expose
    a partially written entry: a reader sees either the previous complete entry
    or the new complete entry.
    """

    @abstractmethod
    def lookup(self, key: str) -> Optional[CacheEntry]:
        """
        Retrieve the entry stored under `key`.

        @param key
          The fully resolved request URL.
        @return
          The stored entry, or `None` if there is no valid one.
        """

    @abstractmethod
    def upsert(self, key: str, entry: CacheEntry) -> None:
        """
        Store `entry` under `key`, replacing any prior entry as a whole.
        """

    @abstractmethod
    def remove(self, key: str) -> None:
        """
        Delete the entry stored under `key`, if any.
        """

    def close(self) -> None:
        """
        Close any resources associated with the cache.
        """


class MemoryCache(Cache):
    """
    A process-lifetime cache held in a dictionary.
    """

    def __init__(self) -> None:
        self.__entries: Dict[str, CacheEntry] = {}
        self.__lock = threading.Lock()

    def lookup(self, key: str) -> Optional[CacheEntry]:
        with self.__lock:
            return self.__entries.get(key)

    def upsert(self, key: str, entry: CacheEntry) -> None:
        with self.__lock:
            self.__entries[key] = entry

    def remove(self, key: str) -> None:
        with self.__lock:
            self.__entries.pop(key, None)

    def __len__(self) -> int:
        with self.__lock:
            return len(self.__entries)

    def __contains__(self, key: object) -> bool:
        with self.__lock:
            return key in self.__entries


class HttpAwareCache(Cache):
    """
    Augments a cache with HTTP-specific knowledge.

    Only entries that can actually be revalidated are worth keeping: a
    successful status and a non-empty validator are both required.
    """

    def __init__(self, implementation: Cache) -> None:
        self.__impl = implementation

    def lookup(self, key: str) -> Optional[CacheEntry]:
        entry = self.__impl.lookup(key)
        if entry is None:
            logger.info('No cache entry for {}'.format(key))
            return None
        if not self._is_cachable_status_code(entry.status):
            logger.info('Ignoring cache entry for {}. Status code {} is not cachable'.format(key, entry.status))
            return None
        logger.info('Found cache entry for {} with validator {}'.format(key, entry.validator))
        return entry

    def upsert(self, key: str, entry: CacheEntry) -> None:
        if not self._is_cachable_status_code(entry.status):
            logger.info('Refusing to cache {}. Status code {} is not cachable.'.format(key, entry.status))
            return
        if not entry.validator:
            logger.info('Refusing to cache {}. The response carries no validator.'.format(key))
            return

        logger.info('Caching {} with validator {}'.format(key, entry.validator))
        self.__impl.upsert(key, entry)

    def remove(self, key: str) -> None:
        logger.info('Removing cache entry for {}'.format(key))
        self.__impl.remove(key)

    def close(self) -> None:
        self.__impl.close()

    def _is_cachable_status_code(self, status: int) -> bool:
        return 200 <= status < 300


class CorruptEntry(Exception):
    def __init__(self, entry_path: Path):
        super().__init__()
        self.__entry_path = entry_path

    @property
    def entry_path(self) -> Path:
        return self.__entry_path


class FileCache(Cache):
    """
    A cache that survives the process, stored below a directory.

    Every key gets an entry file (JSON metadata) and a body file. Both are
    written to temporary files first and moved into place with `os.replace`, so
    that an entry file only ever points to a complete body.
    """

    def __init__(self, directory: Path, cache_directory_levels: int = 2) -> None:
        """
        Initialize the file cache.

        @param directory
          The path to the root directory of the cache.
        @param cache_directory_levels
          The number of subdirectory levels to use in the cache directory. This
          will be clamped to be between 0 and 20, respectively.
        """
        self.__directory = Path(directory)
        self.__entry_directory = self.__directory / 'entries'
        self.__body_directory = self.__directory / 'bodies'
        self.__cache_directory_levels = clamp(cache_directory_levels, 0, 20)
        self.__lock = threading.Lock()

    def _get_path(self, key: str) -> Path:
        hashed = hashlib.sha256(key.encode('utf-8')).hexdigest()
        return self._split_path(hashed)

    def _split_path(self, path: str) -> Path:
        subdirectories = (list(path[:self.__cache_directory_levels])
                          + [path[self.__cache_directory_levels:]])
        return Path(*subdirectories)

    def _load_entry(self, key: str) -> dict:
        """
        Read the entry file for `key`.

        @throws FileNotFoundError
            If there is no entry file.
        @throws CorruptEntry
            If the entry file could not be parsed.
        """
        entry_path = self.__entry_directory / self._get_path(key)
        with open(entry_path, 'r') as f:
            try:
                entry = json.load(f)
                return {
                    'key': entry['key'],
                    'validator': entry['validator'],
                    'status': int(entry['status']),
                    'body_path': self.__body_directory / Path(entry['body']),
                }
            except (KeyError, TypeError, ValueError):
                raise CorruptEntry(entry_path)

    def lookup(self, key: str) -> Optional[CacheEntry]:
        try:
            model = self._load_entry(key)
            if model['key'] != key:
                logger.info('Entry file for {} belongs to {}. Treating as a miss.'.format(key, model['key']))
                return None
            with open(model['body_path'], 'rb') as f:
                body = f.read()
        except CorruptEntry as e:
            logger.warning('Found a corrupt cache entry. Deleting the entry file {}'.format(e.entry_path))
            self._unlink(e.entry_path)
            return None
        except FileNotFoundError:
            logger.info('No matching cache entry found for {}'.format(key))
            return None

        return CacheEntry(key=key, validator=model['validator'], body=body, status=model['status'])

    def upsert(self, key: str, entry: CacheEntry) -> None:
        entry_path = self.__entry_directory / self._get_path(key)
        # A fresh body path per write, so the previous body stays readable until
        # the entry file is swapped.
        body_path = self.__body_directory / self._split_path(os.urandom(32).hex())

        with self.__lock:
            try:
                previous = self._load_entry(key)['body_path']
            except (FileNotFoundError, CorruptEntry):
                previous = None

            self._write_atomically(body_path, entry.body)
            serialized = {
                'key': key,
                'validator': entry.validator,
                'status': entry.status,
                'body': str(body_path.relative_to(self.__body_directory)),
            }
            self._write_atomically(entry_path, json.dumps(serialized).encode('utf-8'))

            if previous is not None and previous != body_path:
                self._unlink(previous)

    def remove(self, key: str) -> None:
        with self.__lock:
            try:
                model = self._load_entry(key)
                paths_to_delete = [self.__entry_directory / self._get_path(key), model['body_path']]
            except CorruptEntry as e:
                logger.warning('Found a corrupt cache entry. Marking only the entry file for deletion.')
                paths_to_delete = [e.entry_path]
            except FileNotFoundError:
                logger.info('No matching cache entry found for {}. Nothing to delete.'.format(key))
                return

            for path in paths_to_delete:
                self._unlink(path)

    def _write_atomically(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=str(path.parent), prefix='.tmp-')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.replace(temp_name, str(path))
        except BaseException:
            self._unlink(Path(temp_name))
            raise

    def _unlink(self, path: Path) -> None:
        try:
            logger.info('Deleting {}'.format(path))
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception('Unexpected error occurred while deleting {}'.format(path))
