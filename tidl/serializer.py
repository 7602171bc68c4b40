from abc import ABC, abstractmethod
import dataclasses
from enum import Enum
import json
import logging
from typing import Any, BinaryIO, Dict, List, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from .errors import SerializationError
from .util import DataclassJSONEncoder, snake_case


logger = logging.getLogger(__name__)

T = TypeVar('T')


class Serializer(ABC):
    """
    Converts between response bytes and model objects.

    Implementations must raise `SerializationError` for any payload they cannot
    decode, so that the transport layer can tell a bad body from a bad request.
    """

    @abstractmethod
    def decode(self, stream: BinaryIO, model_type: Type[T]) -> T:
        """
        Decode the whole of `stream` into an instance of `model_type`.
        """

    @abstractmethod
    def encode(self, obj: Any) -> bytes:
        """
        Encode `obj` into bytes.
        """


class JsonSerializer(Serializer):
    """
    Decodes JSON into (possibly generic) dataclasses.

    camelCase keys are matched to snake_case fields and unknown keys are
    ignored, so the models only need to declare what they care about.
    """

    def decode(self, stream: BinaryIO, model_type: Type[T]) -> T:
        raw = stream.read()
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise SerializationError('Response body is not valid JSON', e) from e

        try:
            return self._convert(data, model_type, {})
        except (TypeError, ValueError, KeyError) as e:
            raise SerializationError('Response body does not match {}'.format(model_type), e) from e

    def encode(self, obj: Any) -> bytes:
        return json.dumps(obj, cls=DataclassJSONEncoder).encode('utf-8')

    def _convert(self, value: Any, target: Any, bindings: Dict[Any, Any]) -> Any:
        if isinstance(target, TypeVar):
            target = bindings.get(target, Any)
        if target is Any or value is None:
            return value

        origin = get_origin(target)
        args = get_args(target)

        if origin is Union:
            candidates = [arg for arg in args if arg is not type(None)]
            if len(candidates) != 1:
                return value
            return self._convert(value, candidates[0], bindings)

        if origin in (list, List):
            if not isinstance(value, list):
                raise TypeError('Expected a JSON array, got {}'.format(type(value).__name__))
            item_type = args[0] if args else Any
            return [self._convert(item, item_type, bindings) for item in value]

        if origin in (dict, Dict):
            return dict(value)

        cls = origin or target
        if dataclasses.is_dataclass(cls):
            resolved = [bindings.get(arg, Any) if isinstance(arg, TypeVar) else arg for arg in args]
            inner = dict(zip(getattr(cls, '__parameters__', ()), resolved))
            return self._from_dict(cls, value, inner)
        if isinstance(cls, type) and issubclass(cls, Enum):
            return cls(value)
        return value

    def _from_dict(self, cls: type, value: Any, bindings: Dict[Any, Any]) -> Any:
        if not isinstance(value, dict):
            raise TypeError('Expected a JSON object for {}, got {}'.format(cls.__name__, type(value).__name__))

        hints = get_type_hints(cls)
        known = {f.name for f in dataclasses.fields(cls) if f.init}
        kwargs = {}
        for key, item in value.items():
            name = snake_case(key)
            if name not in known:
                continue
            kwargs[name] = self._convert(item, hints.get(name, Any), bindings)
        return cls(**kwargs)
