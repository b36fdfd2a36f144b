from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from mediaoptim.errors import ConfigError
from mediaoptim.paths import app_root, default_cache_path, default_config_path, default_media_root

DEFAULT_CONTENT_GLOBS = [
    "src/content/**/*.{md,mdx,json}",
    "src/**/*.{astro,ts,tsx,js,jsx}",
]


@dataclass(slots=True)
class OptimizeConfig:
    max_bytes: int = 2 * 1024 * 1024
    quality: int = 80
    min_quality: int = 40
    quality_step: int = 5
    target_format: str = "webp"


@dataclass(slots=True)
class UIConfig:
    color: bool = True


@dataclass(slots=True)
class AppConfig:
    app_root: Path = field(default_factory=app_root)
    media_root: Path | None = None
    cache_path: Path | None = None
    public_prefix: str = "/media"
    content_globs: list[str] = field(default_factory=lambda: list(DEFAULT_CONTENT_GLOBS))
    optimize: OptimizeConfig = field(default_factory=OptimizeConfig)
    ui: UIConfig = field(default_factory=UIConfig)

    def __post_init__(self) -> None:
        self.app_root = Path(self.app_root).expanduser().resolve()
        if self.media_root is None:
            self.media_root = default_media_root(self.app_root)
        if self.cache_path is None:
            self.cache_path = default_cache_path(self.app_root)
        self.media_root = _under_root(self.app_root, self.media_root)
        self.cache_path = _under_root(self.app_root, self.cache_path)
        self.public_prefix = "/" + self.public_prefix.strip("/")


def _under_root(root: Path, value: Path | str) -> Path:
    p = Path(value).expanduser()
    if not p.is_absolute():
        p = root / p
    return p.resolve()


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def validate_optimize(cfg: OptimizeConfig) -> OptimizeConfig:
    if cfg.target_format.lower() != "webp":
        raise ConfigError(f"unsupported target format: {cfg.target_format}")
    if not 1 <= cfg.min_quality <= cfg.quality <= 100:
        raise ConfigError(
            f"quality bounds must satisfy 1 <= min_quality <= quality <= 100 "
            f"(got min_quality={cfg.min_quality}, quality={cfg.quality})"
        )
    if cfg.quality_step <= 0:
        raise ConfigError(f"quality_step must be positive (got {cfg.quality_step})")
    if cfg.max_bytes <= 0:
        raise ConfigError(f"max_bytes must be positive (got {cfg.max_bytes})")
    return cfg


def _to_config(data: dict[str, Any], root: Path) -> AppConfig:
    try:
        optimize = OptimizeConfig(**data.get("optimize", {}))
        ui = UIConfig(**data.get("ui", {}))
    except TypeError as exc:
        raise ConfigError(f"invalid config section: {exc}") from exc
    globs = data.get("content_globs", DEFAULT_CONTENT_GLOBS)
    if isinstance(globs, str):
        globs = [globs]
    return AppConfig(
        app_root=root,
        media_root=data.get("media_root"),
        cache_path=data.get("cache_path"),
        public_prefix=str(data.get("public_prefix", "/media")),
        content_globs=[str(g) for g in globs],
        optimize=validate_optimize(optimize),
        ui=ui,
    )


def load_config(
    config_path: Path | None = None,
    root: Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> AppConfig:
    base_root = (root or app_root()).expanduser().resolve()
    path = config_path or default_config_path(base_root)
    base: dict[str, Any] = {}
    if path.exists():
        try:
            loaded = yaml.safe_load(path.read_text())
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"cannot load config {path}: {exc}") from exc
        if isinstance(loaded, dict):
            base = loaded
    if overrides:
        base = _merge(base, overrides)
    return _to_config(base, base_root)


def write_default_config(path: Path | None = None) -> Path:
    target = path or default_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.exists():
        return target
    defaults = OptimizeConfig()
    target.write_text(
        yaml.safe_dump(
            {
                "media_root": "public/media",
                "cache_path": ".media-optim-cache.json",
                "public_prefix": "/media",
                "content_globs": list(DEFAULT_CONTENT_GLOBS),
                "optimize": {
                    "max_bytes": defaults.max_bytes,
                    "quality": defaults.quality,
                    "min_quality": defaults.min_quality,
                    "quality_step": defaults.quality_step,
                    "target_format": defaults.target_format,
                },
                "ui": {"color": True},
            },
            sort_keys=False,
        )
    )
    return target
