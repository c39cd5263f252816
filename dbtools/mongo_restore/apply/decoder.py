"""
Document decoders for dump blobs.

A dump stores one document per file, either as MongoDB extended JSON or as
a raw BSON document. Callers may also plug in their own function.

The decoder is resolved once per session into a Decoder value; nothing
downstream inspects the configured option again.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Union

import bson
from bson import json_util

from ..errors import ConfigurationError


class DecoderKind(Enum):
    """Supported document encodings."""

    JSON = "json"
    BSON = "bson"
    CUSTOM = "custom"


def _decode_json(data: bytes) -> Any:
    # Extended JSON keeps ObjectId, dates and friends intact.
    return json_util.loads(data.decode("utf-8"))


@dataclass(frozen=True)
class Decoder:
    """A resolved document decoder.

    Attributes:
        kind: Encoding this decoder handles
        handler: Function turning one blob into one document
    """

    kind: DecoderKind
    handler: Callable[[bytes], Any]

    def decode(self, data: bytes) -> Any:
        """Decode one blob. Errors from the handler propagate unchanged."""
        return self.handler(data)

    @classmethod
    def json(cls) -> Decoder:
        return cls(DecoderKind.JSON, _decode_json)

    @classmethod
    def bson(cls) -> Decoder:
        return cls(DecoderKind.BSON, bson.decode)

    @classmethod
    def custom(cls, handler: Callable[[bytes], Any]) -> Decoder:
        return cls(DecoderKind.CUSTOM, handler)


def decode_index_specs(data: bytes) -> list[dict[str, Any]]:
    """Decode a .metadata blob into a list of index specifications."""
    specs = _decode_json(data)
    if not isinstance(specs, list):
        raise ValueError(f"expected a list of index specifications, got {type(specs).__name__}")
    return specs


def resolve_decoder(option: Union[str, Callable[[bytes], Any], Decoder]) -> Decoder:
    """Turn a parser option into a Decoder.

    Args:
        option: "json", "bson" (case-insensitive), a callable, or a Decoder

    Returns:
        The resolved Decoder

    Raises:
        ConfigurationError: If the tag is not a known encoding
    """
    if isinstance(option, Decoder):
        return option
    if callable(option):
        return Decoder.custom(option)

    tag = str(option).lower()
    if tag == DecoderKind.BSON.value:
        return Decoder.bson()
    if tag == DecoderKind.JSON.value:
        return Decoder.json()
    raise ConfigurationError(f"missing parser option: unknown parser '{option}'", option="parser")
