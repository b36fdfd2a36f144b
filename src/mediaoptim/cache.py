from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import Any

from mediaoptim.errors import CacheReadError, CacheWriteError
from mediaoptim.media.image_io import FileStat

logger = logging.getLogger(__name__)

CACHE_VERSION = 1


@dataclass(slots=True, frozen=True)
class Fingerprint:
    mtime_ms: float
    size: int

    @classmethod
    def from_stat(cls, st: FileStat) -> Fingerprint:
        return cls(mtime_ms=st.mtime_ms, size=st.size)

    def to_json(self) -> dict[str, Any]:
        return {"mtimeMs": self.mtime_ms, "size": self.size}


@dataclass(slots=True)
class MediaCache:
    version: int = CACHE_VERSION
    entries: dict[str, Fingerprint] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "entries": {key: self.entries[key].to_json() for key in sorted(self.entries)},
        }


def _parse_entry(key: str, raw: Any, path: Path) -> Fingerprint:
    if not isinstance(raw, dict):
        raise CacheReadError(path, f"entry {key!r} is not an object")
    try:
        return Fingerprint(mtime_ms=float(raw["mtimeMs"]), size=int(raw["size"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise CacheReadError(path, f"entry {key!r} is malformed: {exc}") from exc


def load_cache(path: Path) -> MediaCache:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return MediaCache()
    except OSError as exc:
        raise CacheReadError(path, str(exc)) from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise CacheReadError(path, f"invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise CacheReadError(path, "top-level value is not an object")

    entries_raw = data.get("entries") or {}
    if not isinstance(entries_raw, dict):
        raise CacheReadError(path, "'entries' is not an object")
    entries = {str(k): _parse_entry(str(k), v, path) for k, v in entries_raw.items()}
    version = data.get("version", CACHE_VERSION)
    logger.debug("loaded %d cache entries from %s", len(entries), path)
    return MediaCache(version=version if isinstance(version, int) else CACHE_VERSION, entries=entries)


def lookup(cache: MediaCache, key: str) -> Fingerprint | None:
    return cache.entries.get(key)


def record(cache: MediaCache, key: str, fingerprint: Fingerprint) -> None:
    cache.entries[key] = fingerprint


def forget(cache: MediaCache, key: str) -> None:
    cache.entries.pop(key, None)


def rename(cache: MediaCache, old_key: str, new_key: str, fingerprint: Fingerprint) -> None:
    forget(cache, old_key)
    record(cache, new_key, fingerprint)


def persist_cache(cache: MediaCache, path: Path) -> None:
    payload = json.dumps(cache.to_json(), indent=2) + "\n"
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, encoding="utf-8")
    except OSError as exc:
        raise CacheWriteError(path, str(exc)) from exc
    logger.debug("wrote %d cache entries to %s", len(cache.entries), path)


def prune_missing(cache: MediaCache, media_root: Path, prefix: str = "/media") -> list[str]:
    head = prefix.rstrip("/") + "/"
    removed: list[str] = []
    for key in sorted(cache.entries):
        if not key.startswith(head):
            continue
        if (media_root / key[len(head) :]).is_file():
            continue
        forget(cache, key)
        removed.append(key)
    return removed
