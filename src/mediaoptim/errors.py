from __future__ import annotations

from pathlib import Path


class MediaOptimError(Exception):
    """Base class for every error raised by mediaoptim."""


class ConfigError(MediaOptimError):
    pass


class DiscoveryError(MediaOptimError):
    pass


class CacheReadError(MediaOptimError):
    def __init__(self, path: Path, reason: str):
        super().__init__(f"cannot read cache {path}: {reason}")
        self.path = path


class CacheWriteError(MediaOptimError):
    def __init__(self, path: Path, reason: str):
        super().__init__(f"cannot write cache {path}: {reason}")
        self.path = path


class EncodingError(MediaOptimError):
    """Source bytes could not be decoded, or the encoder rejected them."""


class ReferenceRewriteError(MediaOptimError):
    def __init__(self, path: Path, reason: str):
        super().__init__(f"cannot rewrite references in {path}: {reason}")
        self.path = path
