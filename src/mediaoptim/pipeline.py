from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
import logging
from pathlib import Path
from typing import Sequence

from mediaoptim.cache import Fingerprint, MediaCache, load_cache, lookup, persist_cache, record, rename
from mediaoptim.config import AppConfig, OptimizeConfig, validate_optimize
from mediaoptim.media.image_io import (
    SUPPORTED_EXTENSIONS,
    discover_targets,
    is_within_dir,
    output_path_for,
    public_path,
    relative_public_path,
    stat_file,
)
from mediaoptim.output_models import (
    DryRunOutcome,
    ErrorOutcome,
    OptimizedOutcome,
    ProcessingOutcome,
    RunResult,
    RunSummary,
    SkippedOutcome,
)
from mediaoptim.rewrite import replace_references
from mediaoptim.search import optimise_buffer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunOptions:
    force: bool = False
    dry_run: bool = False
    max_bytes: int | None = None
    quality: int | None = None
    min_quality: int | None = None
    quality_step: int | None = None

    def settings(self, base: OptimizeConfig) -> OptimizeConfig:
        overrides = {
            "max_bytes": self.max_bytes,
            "quality": self.quality,
            "min_quality": self.min_quality,
            "quality_step": self.quality_step,
        }
        return validate_optimize(replace(base, **{k: v for k, v in overrides.items() if v is not None}))


def _write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


async def process_image(
    file_path: Path,
    config: AppConfig,
    cache: MediaCache,
    options: RunOptions,
    settings: OptimizeConfig | None = None,
) -> ProcessingOutcome:
    ext = file_path.suffix.lower()
    if ext not in SUPPORTED_EXTENSIONS:
        return SkippedOutcome(file_path=file_path, reason="unsupported-extension")

    media_root = config.media_root
    if not is_within_dir(file_path, media_root):
        return SkippedOutcome(file_path=file_path, reason="outside-root")

    source = file_path.resolve()
    st = await asyncio.to_thread(stat_file, source)
    key = public_path(media_root, source, config.public_prefix)

    if not options.force:
        cached = lookup(cache, key)
        if cached is not None and cached == Fingerprint.from_stat(st):
            return SkippedOutcome(file_path=file_path, reason="cached")

    if options.dry_run:
        return DryRunOutcome(file_path=file_path, original_bytes=st.size)

    data = await asyncio.to_thread(source.read_bytes)
    result = await optimise_buffer(data, settings or options.settings(config.optimize))

    target = output_path_for(source)
    renamed = target != source
    await asyncio.to_thread(_write_bytes, target, result.buffer)
    new_key = public_path(media_root, target, config.public_prefix)

    updated: list[Path] = []
    if renamed:
        await asyncio.to_thread(source.unlink)
        updated += await replace_references(config.app_root, key, new_key, config.content_globs)
        updated += await replace_references(
            config.app_root,
            relative_public_path(key),
            relative_public_path(new_key),
            config.content_globs,
        )

    fingerprint = Fingerprint.from_stat(await asyncio.to_thread(stat_file, target))
    if renamed:
        rename(cache, key, new_key, fingerprint)
    else:
        record(cache, key, fingerprint)

    return OptimizedOutcome(
        file_path=target,
        original_bytes=len(data),
        output_bytes=len(result.buffer),
        quality=result.quality,
        renamed=renamed,
        within_budget=result.within_budget,
        output_public_path=new_key,
        references_updated=sorted(set(updated)),
    )


def log_outcome(outcome: ProcessingOutcome) -> None:
    name = outcome.file_path.name
    if isinstance(outcome, OptimizedOutcome):
        extra = ", renamed to .webp" if outcome.renamed else ""
        if not outcome.within_budget:
            extra += ", over budget"
        logger.info(
            "optimised %s (%.1f KB, q=%d, saved %.1f%%%s)",
            name,
            outcome.output_bytes / 1024,
            outcome.quality,
            outcome.saving_pct,
            extra,
        )
    elif isinstance(outcome, SkippedOutcome):
        logger.info("skipped %s [%s]", name, outcome.reason)
    elif isinstance(outcome, DryRunOutcome):
        logger.info("would optimise %s (%d bytes, dry run)", name, outcome.original_bytes)
    else:
        logger.error("failed to optimise %s: %s", name, outcome.error)


async def optimize_media(
    config: AppConfig,
    paths: Sequence[str] = (),
    force: bool = False,
    dry_run: bool = False,
    cache: MediaCache | None = None,
    options: RunOptions | None = None,
) -> RunResult:
    base = options or RunOptions()
    opts = replace(base, force=base.force or force, dry_run=base.dry_run or dry_run)
    settings = opts.settings(config.optimize)

    if cache is None:
        cache = await asyncio.to_thread(load_cache, config.cache_path)

    files = await asyncio.to_thread(discover_targets, list(paths), config.media_root)
    if not files:
        logger.warning("no media files found to optimise")
        return RunResult()

    processed: list[ProcessingOutcome] = []
    for file_path in files:
        try:
            outcome = await process_image(file_path, config, cache, opts, settings)
        except Exception as exc:
            outcome = ErrorOutcome(file_path=file_path, error=str(exc), error_type=type(exc).__name__)
        processed.append(outcome)
        log_outcome(outcome)

    written = False
    if not opts.dry_run:
        await asyncio.to_thread(persist_cache, cache, config.cache_path)
        written = True

    summary = RunSummary.from_outcomes(processed)
    logger.info(
        "summary: %d optimised, %d skipped, %d dry run, %d errors",
        summary.optimized,
        summary.skipped,
        summary.dry_run,
        summary.errors,
    )
    return RunResult(processed=processed, summary=summary, cache_written=written)
