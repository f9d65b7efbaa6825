"""
Unit tests for the LocalJson filesystem generator
"""

import asyncio
import json
import os
import sys
from unittest.mock import patch

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.errors import ConstructionFailure, MalformedDocument, StorageFailure
from common.types import CollectionMetadata, TokenMetadata
from metadata_server.generator import MetadataGenerator
from metadata_server.local_json import LocalJson

TOAST = {"name": "Toast", "description": "d", "external_url": "http://e/", "image": "http://i/"}
CONTRACT = {
    "name": "Toast",
    "description": "Toast",
    "image": {"image": "http://i/"},
    "external_link": "http://example.com/",
    "seller_fee_basis_points": 300,
    "fee_recipient": "0x" + "00" * 20,
}


def _write(path, payload):
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload))


class TestConstruction:
    """Root directory checks at construction"""

    def test_creates_missing_directories(self, tmp_path):
        """Missing parents are created"""
        root = tmp_path / "a" / "b" / "metadata"
        gen = LocalJson(root)
        assert root.is_dir()
        assert gen.root == root

    def test_existing_directory_accepted(self, tmp_path):
        """An existing directory is used as is"""
        LocalJson(str(tmp_path))

    def test_regular_file_rejected(self, tmp_path):
        """A regular file at the root path fails construction"""
        target = tmp_path / "not_a_dir"
        target.write_text("x")
        with pytest.raises(ConstructionFailure):
            LocalJson(target)

    def test_satisfies_generator_protocol(self, tmp_path):
        """LocalJson is a MetadataGenerator"""
        assert isinstance(LocalJson(tmp_path), MetadataGenerator)


class TestMetadataFor:
    """Token document resolution"""

    def test_missing_file_is_not_found(self, tmp_path):
        """No file means not found, and nothing is cached"""
        gen = LocalJson(tmp_path)
        assert asyncio.run(gen.metadata_for(0)) is None
        assert gen.stats()["tokens"] == 0

    def test_reads_decimal_file_name(self, tmp_path):
        """Token files are named by the decimal id"""
        _write(tmp_path / "384510.json", TOAST)
        doc = asyncio.run(LocalJson(tmp_path).metadata_for(384510))
        assert isinstance(doc, TokenMetadata)
        assert doc.name == "Toast"

    def test_served_from_memory_after_first_read(self, tmp_path):
        """Deleting the file after the first read does not change the answer"""
        _write(tmp_path / "0.json", TOAST)
        gen = LocalJson(tmp_path)
        first = asyncio.run(gen.metadata_for(0))

        (tmp_path / "0.json").unlink()
        second = asyncio.run(gen.metadata_for(0))

        assert second is first
        assert second.model_dump_json() == first.model_dump_json()

    def test_no_filesystem_access_on_hit(self, tmp_path):
        """Cache hits never touch the filesystem"""
        _write(tmp_path / "3.json", TOAST)
        gen = LocalJson(tmp_path)
        with patch.object(LocalJson, "_read", wraps=LocalJson._read) as read:
            asyncio.run(gen.metadata_for(3))
            asyncio.run(gen.metadata_for(3))
            asyncio.run(gen.metadata_for(3))
        assert read.call_count == 1

    def test_concurrent_first_access_reads_once(self, tmp_path):
        """A burst of first requests reads the file once"""
        _write(tmp_path / "8.json", TOAST)
        gen = LocalJson(tmp_path)

        async def burst():
            return await asyncio.gather(*(gen.metadata_for(8) for _ in range(10)))

        with patch.object(LocalJson, "_read", wraps=LocalJson._read) as read:
            docs = asyncio.run(burst())
        assert read.call_count == 1
        assert {d.name for d in docs} == {"Toast"}

    def test_invalid_json_is_malformed_and_not_cached(self, tmp_path):
        """Broken JSON fails and a repaired file is picked up later"""
        _write(tmp_path / "5.json", "{not json")
        gen = LocalJson(tmp_path)
        with pytest.raises(MalformedDocument) as err:
            asyncio.run(gen.metadata_for(5))
        assert err.value.key.endswith("5.json")

        _write(tmp_path / "5.json", TOAST)
        assert asyncio.run(gen.metadata_for(5)).name == "Toast"

    def test_schema_violation_is_malformed(self, tmp_path):
        """Valid JSON missing required fields is malformed"""
        _write(tmp_path / "6.json", {"name": "Toast"})
        with pytest.raises(MalformedDocument):
            asyncio.run(LocalJson(tmp_path).metadata_for(6))

    @pytest.mark.parametrize(
        "attribute",
        ['{"value": NaN}', '{"value": Infinity}', '{"value": -Infinity}', '{"value": 1.5, "max_value": Infinity}'],
    )
    def test_non_finite_number_is_malformed_and_not_cached(self, tmp_path, attribute):
        """NaN and Infinity literals are rejected instead of served as invalid JSON"""
        body = json.dumps(TOAST)[:-1] + ', "attributes": [' + attribute + "]}"
        _write(tmp_path / "12.json", body)
        gen = LocalJson(tmp_path)
        with pytest.raises(MalformedDocument):
            asyncio.run(gen.metadata_for(12))
        assert gen.stats()["tokens"] == 0

    def test_io_error_is_storage_failure(self, tmp_path):
        """Read errors other than absence are storage failures"""
        (tmp_path / "7.json").mkdir()
        with pytest.raises(StorageFailure):
            asyncio.run(LocalJson(tmp_path).metadata_for(7))

    def test_instances_keep_separate_caches(self, tmp_path):
        """A fresh instance does not see another instance's cache"""
        _write(tmp_path / "1.json", TOAST)
        warm = LocalJson(tmp_path)
        asyncio.run(warm.metadata_for(1))
        (tmp_path / "1.json").unlink()

        assert asyncio.run(warm.metadata_for(1)) is not None
        assert asyncio.run(LocalJson(tmp_path).metadata_for(1)) is None


class TestCollectionMetadata:
    """contract.json resolution"""

    def test_absent_then_created_then_cached(self, tmp_path):
        """Absent is retried, found is memoized"""
        gen = LocalJson(tmp_path)
        assert asyncio.run(gen.collection_metadata()) is None

        _write(tmp_path / "contract.json", CONTRACT)
        doc = asyncio.run(gen.collection_metadata())
        assert isinstance(doc, CollectionMetadata)
        assert doc.seller_fee_basis_points == 300

        (tmp_path / "contract.json").unlink()
        assert asyncio.run(gen.collection_metadata()) is doc

    def test_malformed_collapses_to_none(self, tmp_path):
        """A malformed contract.json is treated as absent"""
        _write(tmp_path / "contract.json", "[]")
        assert asyncio.run(LocalJson(tmp_path).collection_metadata()) is None

    def test_io_error_collapses_to_none(self, tmp_path):
        """An unreadable contract.json is treated as absent"""
        (tmp_path / "contract.json").mkdir()
        assert asyncio.run(LocalJson(tmp_path).collection_metadata()) is None
