import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from pydantic import ValidationError

from remote_asset.cache.utils import APP_VERSION_ENV, resolve_app_version
from remote_asset.config.loader import YamlConfigLoader
from remote_asset.config.models import ConfigLoadRequest, RemoteAssetSettings
from remote_asset.fetch.mock import SequenceAssetFetcher
from remote_asset.manager import RemoteAssetManager
from remote_asset.materialize import utf8_text

CONFIG_YAML = """
asset:
  remote_url: "https://example.invalid/asset.json"
  cache_file_name: "asset.json"
  app_version: "1.0"
logging:
  level: "DEBUG"
"""


class YamlConfigLoaderTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        self.yaml_path = self.root / "config.yaml"
        self.yaml_path.write_text(CONFIG_YAML, encoding="utf-8")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def request(self) -> ConfigLoadRequest:
        return ConfigLoadRequest(yaml_path=str(self.yaml_path), env_prefix="RATEST__", dotenv_path=None)

    async def test_loads_yaml_with_defaults(self) -> None:
        config = await YamlConfigLoader().load(self.request())

        self.assertEqual(config.asset.remote_url, "https://example.invalid/asset.json")
        self.assertTrue(config.asset.refresh_on_init)
        self.assertIsNone(config.asset.auto_refresh_interval_seconds)
        self.assertEqual(config.logging.level, "DEBUG")
        self.assertEqual(config.logging.file.path, "")

    async def test_env_overrides_are_applied(self) -> None:
        with mock.patch.dict(
            os.environ,
            {"RATEST__ASSET__APP_VERSION": "2.0", "RATEST__ASSET__AUTO_REFRESH_INTERVAL_SECONDS": "30"},
        ):
            config = await YamlConfigLoader().load(self.request())

        self.assertEqual(config.asset.app_version, "2.0")
        self.assertEqual(config.asset.auto_refresh_interval_seconds, 30.0)

    async def test_unknown_env_key_is_rejected(self) -> None:
        with mock.patch.dict(os.environ, {"RATEST__ASSET__NOT_A_SETTING": "x"}):
            with self.assertRaises(ValidationError):
                await YamlConfigLoader().load(self.request())

    async def test_dotenv_values_feed_overrides(self) -> None:
        dotenv_path = self.root / ".env"
        dotenv_path.write_text("RATEST__ASSET__CACHE_FILE_NAME=from-dotenv.json\n", encoding="utf-8")
        request = ConfigLoadRequest(yaml_path=str(self.yaml_path), env_prefix="RATEST__", dotenv_path=str(dotenv_path))

        with mock.patch.dict(os.environ, {}):
            config = await YamlConfigLoader().load(request)

        self.assertEqual(config.asset.cache_file_name, "from-dotenv.json")

    async def test_missing_config_file(self) -> None:
        request = ConfigLoadRequest(yaml_path=str(self.root / "nope.yaml"), dotenv_path=None)
        with self.assertRaises(FileNotFoundError):
            await YamlConfigLoader().load(request)

    async def test_manager_from_settings(self) -> None:
        base = self.root / "asset.json"
        base.write_text("{}", encoding="utf-8")
        settings = RemoteAssetSettings(
            remote_url="https://example.invalid/asset.json",
            base_path=str(base),
            cache_dir=str(self.root / "cache"),
            app_version="1.0",
            refresh_on_init=False,
        )

        manager = await RemoteAssetManager.from_settings(settings, utf8_text, fetcher=SequenceAssetFetcher())
        try:
            self.assertEqual(manager.asset, "{}")
            self.assertEqual(manager.app_version, "1.0")
            self.assertEqual(manager.cache_path.parent, self.root / "cache")
        finally:
            await manager.close()


class AppVersionTests(unittest.TestCase):
    def test_explicit_version_wins(self) -> None:
        with mock.patch.dict(os.environ, {APP_VERSION_ENV: "env"}):
            self.assertEqual(resolve_app_version("explicit"), "explicit")

    def test_environment_version_is_used(self) -> None:
        with mock.patch.dict(os.environ, {APP_VERSION_ENV: "env"}):
            self.assertEqual(resolve_app_version(), "env")


if __name__ == "__main__":
    unittest.main()
