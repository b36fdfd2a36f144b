from __future__ import annotations

from dataclasses import dataclass
import glob
import logging
import os
from pathlib import Path
import posixpath
import re
from typing import Iterable, Iterator

from mediaoptim.errors import DiscoveryError

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".webp",
    ".avif",
}

TARGET_EXTENSION = ".webp"

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


@dataclass(slots=True)
class FileStat:
    abs_path: Path
    size: int
    mtime_ms: float


def stat_file(path: Path) -> FileStat:
    st = path.stat()
    return FileStat(abs_path=path, size=st.st_size, mtime_ms=st.st_mtime_ns / 1_000_000)


def normalise_relative(path: str) -> str:
    return path.replace(os.sep, "/").replace("\\", "/")


def public_path(media_root: Path, path: Path, prefix: str = "/media") -> str:
    rel = normalise_relative(os.path.relpath(path, media_root))
    return f"{prefix.rstrip('/')}/{rel}"


def relative_public_path(public: str) -> str:
    return posixpath.join("..", public.lstrip("/"))


def is_within_dir(target: Path, directory: Path) -> bool:
    try:
        target.resolve().relative_to(directory.resolve())
    except ValueError:
        return False
    return True


def output_path_for(path: Path) -> Path:
    if path.suffix.lower() == TARGET_EXTENSION:
        return path
    return path.with_name(f"{path.stem}{TARGET_EXTENSION}")


def expand_braces(pattern: str) -> list[str]:
    match = _BRACE_RE.search(pattern)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    out: list[str] = []
    for item in match.group(1).split(","):
        for expanded in expand_braces(f"{head}{item.strip()}{tail}"):
            if expanded not in out:
                out.append(expanded)
    return out


def glob_files(patterns: Iterable[str], root: Path | None = None) -> list[Path]:
    seen: set[Path] = set()
    out: list[Path] = []
    for raw in patterns:
        for pattern in expand_braces(raw):
            if root is not None and not os.path.isabs(pattern):
                hits = [root / hit for hit in sorted(glob.glob(pattern, root_dir=root, recursive=True))]
            else:
                hits = [Path(hit) for hit in sorted(glob.glob(pattern, recursive=True))]
            for p in hits:
                if p.is_symlink() or not p.is_file():
                    continue
                p = p.absolute()
                if p in seen:
                    continue
                seen.add(p)
                out.append(p)
    return out


def iter_media_files(media_root: Path) -> Iterator[Path]:
    if not media_root.exists():
        return
    for p in sorted(media_root.rglob("*")):
        if p.is_symlink() or not p.is_file():
            continue
        if p.suffix.lower() not in SUPPORTED_EXTENSIONS:
            continue
        yield p


def expand_path_args(paths: Iterable[str]) -> list[Path]:
    # cwd is literal text, only the argument itself may carry wildcards
    cwd = glob.escape(str(Path.cwd()))
    patterns = [os.path.join(cwd, os.path.expanduser(p)) for p in paths]
    return glob_files(patterns)


def discover_targets(paths: list[str], media_root: Path) -> list[Path]:
    try:
        if paths:
            files = expand_path_args(paths)
        else:
            files = list(iter_media_files(media_root))
    except OSError as exc:
        raise DiscoveryError(f"cannot enumerate media files: {exc}") from exc
    logger.debug("discovered %d candidate file(s)", len(files))
    return files
