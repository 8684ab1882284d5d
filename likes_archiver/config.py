"""
Configuration for the likes archiver.

Settings come from the environment (prefix ``LIKES_ARCHIVER_``) or a ``.env``
file, and can be overlaid with the ``downloadSettings`` / ``twitterCredentials``
sections of a ``config.json`` file.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from likes_archiver.models import ErrorKind


class Settings(BaseSettings):
    """Environment-driven settings."""

    model_config = SettingsConfigDict(
        env_prefix="LIKES_ARCHIVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    archive_dir: str = "downloads"
    like_js_path: str = "like.js"
    processed_file: str = "processed-tweets.json"
    error_file: str = "error-tweets.json"
    log_file: str = "download-log.txt"
    config_file: str = "config.json"

    # External metadata downloader
    downloader_command: str = "twitter-media-downloader"
    username: str = ""
    password: str = ""

    # Fetch run
    fetch_batch_size: int = 50
    batch_delay: float = 5.0
    rate_limit_wait: float = 900.0
    max_rate_limit_retries: int = 3

    # Media run
    max_concurrent_downloads: int = 5
    media_batch_size: int = 100
    max_item_retries: int = 3
    request_timeout: float = 30.0
    connect_timeout: float = 10.0


@dataclass
class RetryConfig:
    """Run-level retry behaviour for metadata fetches."""
    max_retries: int = 3
    rate_limit_wait: float = 900.0
    transient_kinds: FrozenSet[ErrorKind] = frozenset({ErrorKind.RATE_LIMIT})


@dataclass
class DownloadConfig:
    """Media transfer behaviour."""
    max_concurrent: int = 5
    batch_size: int = 100
    max_item_retries: int = 3
    request_timeout: float = 30.0
    connect_timeout: float = 10.0


@dataclass
class ArchiverConfig:
    """Main configuration for the archiver."""
    archive_dir: Path = Path("downloads")
    like_js_path: Path = Path("like.js")
    processed_file: Path = Path("processed-tweets.json")
    error_file: Path = Path("error-tweets.json")
    log_file: Optional[Path] = Path("download-log.txt")

    downloader_command: str = "twitter-media-downloader"
    username: str = ""
    password: str = ""

    fetch_batch_size: int = 50
    batch_delay: float = 5.0
    reconcile_batch_size: int = 1000

    retry: RetryConfig = field(default_factory=RetryConfig)
    download: DownloadConfig = field(default_factory=DownloadConfig)

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ArchiverConfig":
        """
        Build configuration from settings and the optional config.json overlay.

        Args:
            settings: Settings instance, read from the environment if None

        Returns:
            ArchiverConfig instance
        """
        settings = settings or Settings()
        config = cls(
            archive_dir=Path(settings.archive_dir),
            like_js_path=Path(settings.like_js_path),
            processed_file=Path(settings.processed_file),
            error_file=Path(settings.error_file),
            log_file=Path(settings.log_file) if settings.log_file else None,
            downloader_command=settings.downloader_command,
            username=settings.username,
            password=settings.password,
            fetch_batch_size=settings.fetch_batch_size,
            batch_delay=settings.batch_delay,
            retry=RetryConfig(
                max_retries=settings.max_rate_limit_retries,
                rate_limit_wait=settings.rate_limit_wait
            ),
            download=DownloadConfig(
                max_concurrent=settings.max_concurrent_downloads,
                batch_size=settings.media_batch_size,
                max_item_retries=settings.max_item_retries,
                request_timeout=settings.request_timeout,
                connect_timeout=settings.connect_timeout
            )
        )
        if settings.config_file:
            apply_config_file(config, Path(settings.config_file))
        return config


def apply_config_file(config: ArchiverConfig, path: Path) -> bool:
    """
    Overlay values from a config.json file onto config.

    Delays in the file are milliseconds. Missing keys keep their current value.

    Args:
        config: Configuration to update in place
        path: Path to config.json

    Returns:
        True if the file was found and applied
    """
    if not path.exists():
        return False

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"⚠️  Failed to read config file {path}: {e}")
        return False

    if not isinstance(data, dict):
        print(f"⚠️  Ignoring config file {path}: expected an object")
        return False

    download_settings = data.get('downloadSettings') or {}
    if download_settings.get('batchSize'):
        config.fetch_batch_size = int(download_settings['batchSize'])
    if download_settings.get('batchDelay'):
        config.batch_delay = download_settings['batchDelay'] / 1000
    if download_settings.get('rateLimitWaitTime'):
        config.retry.rate_limit_wait = download_settings['rateLimitWaitTime'] / 1000
    if download_settings.get('maxRateLimitRetries'):
        config.retry.max_retries = int(download_settings['maxRateLimitRetries'])

    credentials = data.get('twitterCredentials') or {}
    if credentials:
        config.username = credentials.get('username', '') or ''
        config.password = credentials.get('password', '') or ''

    return True
