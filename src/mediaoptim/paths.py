from __future__ import annotations

from pathlib import Path
import os

APP_NAME = "mediaoptim"
CACHE_FILENAME = ".media-optim-cache.json"
CONFIG_FILENAME = f"{APP_NAME}.yaml"


def app_root() -> Path:
    env = os.environ.get("MEDIAOPTIM_APP_ROOT")
    if env:
        return Path(env).expanduser().resolve()
    return Path.cwd().resolve()


def default_media_root(root: Path | None = None) -> Path:
    return (root or app_root()) / "public" / "media"


def default_cache_path(root: Path | None = None) -> Path:
    return (root or app_root()) / CACHE_FILENAME


def default_config_path(root: Path | None = None) -> Path:
    return (root or app_root()) / CONFIG_FILENAME
