"""
Unit tests for document decoders.
"""

from datetime import datetime

import bson
import pytest
from bson import ObjectId, json_util
from bson.errors import InvalidBSON

from dbtools.mongo_restore.apply.decoder import (
    Decoder,
    DecoderKind,
    decode_index_specs,
    resolve_decoder,
)
from dbtools.mongo_restore.errors import ConfigurationError


class TestResolveDecoder:
    """Tests for resolve_decoder()."""

    @pytest.mark.parametrize(
        "tag,kind",
        [
            ("json", DecoderKind.JSON),
            ("JSON", DecoderKind.JSON),
            ("bson", DecoderKind.BSON),
            ("Bson", DecoderKind.BSON),
        ],
    )
    def test_tags(self, tag, kind):
        assert resolve_decoder(tag).kind is kind

    def test_callable(self):
        def handler(data):
            return {"size": len(data)}

        decoder = resolve_decoder(handler)

        assert decoder.kind is DecoderKind.CUSTOM
        assert decoder.decode(b"abc") == {"size": 3}

    def test_decoder_passthrough(self):
        decoder = Decoder.json()
        assert resolve_decoder(decoder) is decoder

    def test_unknown_tag(self):
        with pytest.raises(ConfigurationError, match="unknown parser"):
            resolve_decoder("csv")


class TestDecode:
    """Tests for the built-in decoders."""

    def test_json_keeps_extended_types(self):
        oid = ObjectId()
        created = datetime(2024, 1, 2, 3, 4, 5)
        data = json_util.dumps({"_id": oid, "created": created}).encode()

        document = Decoder.json().decode(data)

        assert document["_id"] == oid
        assert document["created"].replace(tzinfo=None) == created

    def test_bson(self):
        data = bson.encode({"_id": 1, "tags": ["a", "b"]})

        assert Decoder.bson().decode(data) == {"_id": 1, "tags": ["a", "b"]}

    def test_json_error_propagates(self):
        with pytest.raises(ValueError):
            Decoder.json().decode(b"{broken")

    def test_bson_error_propagates(self):
        with pytest.raises(InvalidBSON):
            Decoder.bson().decode(b"\x01\x02")


class TestDecodeIndexSpecs:
    """Tests for decode_index_specs()."""

    def test_list(self):
        specs = [{"key": {"name": 1}, "name": "name_1", "unique": True}]

        assert decode_index_specs(json_util.dumps(specs).encode()) == specs

    def test_not_a_list(self):
        with pytest.raises(ValueError, match="list of index specifications"):
            decode_index_specs(b'{"key": {"name": 1}}')
