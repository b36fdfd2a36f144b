from __future__ import annotations

import asyncio
from typing import Any, Sequence

from mediaoptim.cache import Fingerprint, load_cache, lookup, persist_cache, prune_missing
from mediaoptim.config import AppConfig
from mediaoptim.media.image_io import TARGET_EXTENSION, iter_media_files, public_path, stat_file
from mediaoptim.output_models import RunResult
from mediaoptim.pipeline import RunOptions, optimize_media


class MediaService:
    def __init__(self, config: AppConfig):
        self.config = config

    def optimize(
        self,
        paths: Sequence[str] = (),
        force: bool = False,
        dry_run: bool = False,
        options: RunOptions | None = None,
    ) -> RunResult:
        return asyncio.run(optimize_media(self.config, paths, force=force, dry_run=dry_run, options=options))

    def status(self) -> dict[str, Any]:
        cfg = self.config
        cache = load_cache(cfg.cache_path)
        files = list(iter_media_files(cfg.media_root))
        fresh = 0
        legacy = 0
        for f in files:
            if f.suffix.lower() != TARGET_EXTENSION:
                legacy += 1
            key = public_path(cfg.media_root, f, cfg.public_prefix)
            if lookup(cache, key) == Fingerprint.from_stat(stat_file(f)):
                fresh += 1
        return {
            "app_root": str(cfg.app_root),
            "media_root": str(cfg.media_root),
            "cache_path": str(cfg.cache_path),
            "cache_exists": cfg.cache_path.exists(),
            "cache_entries": len(cache.entries),
            "media_files": len(files),
            "up_to_date": fresh,
            "pending": len(files) - fresh,
            "non_webp": legacy,
        }

    def cache_list(self) -> list[dict[str, Any]]:
        cache = load_cache(self.config.cache_path)
        return [{"public_path": key, **cache.entries[key].to_json()} for key in sorted(cache.entries)]

    def cache_prune(self) -> dict[str, Any]:
        cfg = self.config
        cache = load_cache(cfg.cache_path)
        removed = prune_missing(cache, cfg.media_root, cfg.public_prefix)
        if removed:
            persist_cache(cache, cfg.cache_path)
        return {"removed": len(removed), "remaining": len(cache.entries), "keys": removed}
