import json
import unittest
from datetime import datetime, timezone
from pathlib import Path

from remote_asset.cache.io import decode_metadata, encode_metadata
from remote_asset.cache.models import AssetMetadata, CacheHeaders
from remote_asset.cache.utils import content_hash, default_cache_file_name


class MetadataEncodingTests(unittest.TestCase):
    def test_absent_fields_survive_json(self) -> None:
        metadata = AssetMetadata(app_version="1")

        payload = json.loads(json.dumps(encode_metadata(metadata)))

        self.assertIsNone(payload["cache_headers"]["etag"])
        self.assertIsNone(payload["last_checked_at"])
        self.assertEqual(decode_metadata(payload), metadata)

    def test_timestamps_are_rfc3339_utc(self) -> None:
        checked = datetime(2024, 5, 1, 12, 30, 15, 250000, tzinfo=timezone.utc)
        metadata = AssetMetadata(
            app_version="1.2 (34)",
            cache_headers=CacheHeaders(etag='W/"x"', last_modified="Wed, 01 May 2024 12:00:00 GMT"),
            last_checked_at=checked,
            last_updated_at=checked,
            byte_count=12,
            content_hash="0123456789abcdef",
        )

        payload = encode_metadata(metadata)

        self.assertEqual(payload["last_checked_at"], "2024-05-01T12:30:15.250000Z")
        self.assertEqual(decode_metadata(payload), metadata)

    def test_decode_ignores_unknown_keys_and_missing_optionals(self) -> None:
        metadata = decode_metadata({"app_version": "3", "extra": True})

        self.assertEqual(metadata, AssetMetadata(app_version="3"))

    def test_decode_requires_app_version(self) -> None:
        with self.assertRaises(KeyError):
            decode_metadata({"cache_headers": {}})


class HashingTests(unittest.TestCase):
    def test_content_hash_is_stable_prefix(self) -> None:
        self.assertEqual(content_hash(b"remote"), content_hash(b"remote"))
        self.assertNotEqual(content_hash(b"remote"), content_hash(b"remote!"))
        self.assertEqual(len(content_hash(b"")), 16)

    def test_cache_file_name_depends_on_remote_url(self) -> None:
        first = default_cache_file_name(Path("/bundle/catalog.json"), "https://a.example/catalog.json")
        second = default_cache_file_name(Path("/bundle/catalog.json"), "https://b.example/catalog.json")

        self.assertTrue(first.startswith("catalog.json."))
        self.assertNotEqual(first, second)
        self.assertTrue(default_cache_file_name(None, "https://a.example/x").startswith("asset."))


if __name__ == "__main__":
    unittest.main()
