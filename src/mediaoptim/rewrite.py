from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable

from mediaoptim.errors import ReferenceRewriteError
from mediaoptim.media.image_io import glob_files, normalise_relative, relative_public_path

logger = logging.getLogger(__name__)


def _substitute(text: str, pairs: list[tuple[str, str]]) -> tuple[str, bool]:
    changed = False
    for old, new in pairs:
        if old in text:
            text = text.replace(old, new)
            changed = True
    return text, changed


def _rewrite_file(path: Path, pairs: list[tuple[str, str]]) -> bool:
    try:
        text = path.read_text(encoding="utf-8")
        updated, changed = _substitute(text, pairs)
        if changed:
            path.write_text(updated, encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        raise ReferenceRewriteError(path, str(exc)) from exc
    return changed


async def replace_references(
    root: Path,
    from_path: str,
    to_path: str,
    content_globs: Iterable[str],
) -> list[Path]:
    """Replace literal occurrences of ``from_path`` in every content file.

    Both the path as given and its one-level-up relative form are replaced.
    Returns the files that were rewritten.
    """
    old = normalise_relative(from_path)
    new = normalise_relative(to_path)
    pairs = [(old, new), (relative_public_path(old), relative_public_path(new))]

    files = await asyncio.to_thread(glob_files, list(content_globs), root)
    results = await asyncio.gather(*(asyncio.to_thread(_rewrite_file, f, pairs) for f in files))
    changed = [f for f, hit in zip(files, results) if hit]
    for f in changed:
        logger.info("updated references in %s", f)
    return changed
