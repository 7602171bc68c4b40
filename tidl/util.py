import dataclasses
from enum import Enum
import json
import re
from typing import Any, Iterator, Mapping, Optional, Tuple
from urllib.parse import quote, quote_plus


Query = Mapping[str, Any]

_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')
_PLACEHOLDER = re.compile(r'{(\w+)}')


def clamp(value, min, max):
    return sorted((min, value, max))[1]


def encode_value(value: Any) -> str:
    """
    Render a single query value as text, before URL encoding.
    """
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _form_entries(query: Optional[Query]) -> Iterator[Tuple[str, str]]:
    if not query:
        return
    for name, value in query.items():
        if value is None:
            continue
        yield name, encode_value(value)


def form_encoded_string(query: Optional[Query]) -> str:
    """
    Encode `query` as a URL query string.

    Entries keep the insertion order of the mapping so that identical logical
    queries always produce identical cache keys. Entries whose value is `None`
    are left out.
    """
    return '&'.join('{}={}'.format(quote_plus(name), quote_plus(value))
                    for name, value in _form_entries(query))


def form_encoded_body(query: Optional[Query]) -> Optional[bytes]:
    """
    Encode `query` as an `application/x-www-form-urlencoded` request body.

    @return
      The encoded bytes, or `None` if no entry survives.
    """
    encoded = form_encoded_string(query)
    return encoded.encode('utf-8') if encoded else None


def format_url(template: str, **values: Any) -> str:
    """
    Fill the `{name}` placeholders of a path template, e.g. `/albums/{id}`.
    """
    def replace(match):
        name = match.group(1)
        if name not in values:
            raise KeyError('No value given for path placeholder {}'.format(name))
        return quote(encode_value(values[name]), safe='')
    return _PLACEHOLDER.sub(replace, template)


def build_url(endpoint: str, path: str, query: Optional[Query]) -> str:
    """
    Resolve the full URL of a request. The result doubles as its cache key.
    """
    url = '{}{}'.format(endpoint, path)
    query_string = form_encoded_string(query)
    if not query_string:
        return url
    separator = '&' if '?' in path else '?'
    return '{}{}{}'.format(url, separator, query_string)


def snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub(r'_\1', name).lower()


def camel_case(name: str) -> str:
    head, *tail = name.split('_')
    return head + ''.join(part.title() for part in tail)


class DataclassJSONEncoder(json.JSONEncoder):
    """
    Encodes dataclasses with the API's camelCase key names.
    """

    def default(self, o):
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return {camel_case(f.name): getattr(o, f.name) for f in dataclasses.fields(o)}
        if isinstance(o, Enum):
            return o.value
        return super().default(o)
