from remote_asset.config.loader import YamlConfigLoader
from remote_asset.config.models import AppConfig, ConfigLoadRequest, LoggingSettings, RemoteAssetSettings

__all__ = ["AppConfig", "ConfigLoadRequest", "LoggingSettings", "RemoteAssetSettings", "YamlConfigLoader"]
