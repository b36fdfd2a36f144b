from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Callable

from mediaoptim.config import OptimizeConfig
from mediaoptim.errors import EncodingError
from mediaoptim.media.codec import encode_webp

logger = logging.getLogger(__name__)

Encoder = Callable[[bytes, int], bytes]


@dataclass(slots=True)
class SearchResult:
    buffer: bytes
    quality: int
    attempts: list[int] = field(default_factory=list)
    within_budget: bool = True


async def optimise_buffer(
    data: bytes,
    settings: OptimizeConfig,
    encoder: Encoder = encode_webp,
) -> SearchResult:
    """Walk quality down from ``settings.quality`` in fixed steps.

    The first encoding that fits ``settings.max_bytes`` wins. When nothing fits,
    the buffer produced at the lowest attempted quality is returned instead.
    An encoder error ends the walk.
    """
    quality = settings.quality
    buffer: bytes | None = None
    buffer_quality = quality
    last_error: Exception | None = None
    attempts: list[int] = []

    while quality >= settings.min_quality:
        try:
            encoded = await asyncio.to_thread(encoder, data, quality)
        except Exception as exc:
            last_error = exc
            break
        attempts.append(quality)
        buffer, buffer_quality = encoded, quality
        if len(encoded) <= settings.max_bytes:
            return SearchResult(buffer=encoded, quality=quality, attempts=attempts)
        logger.debug("q=%d produced %d bytes (budget %d)", quality, len(encoded), settings.max_bytes)
        quality -= settings.quality_step

    if buffer is None:
        if last_error is not None:
            raise last_error
        raise EncodingError("failed to optimise image")

    logger.debug("budget not met; keeping q=%d output (%d bytes)", buffer_quality, len(buffer))
    return SearchResult(buffer=buffer, quality=buffer_quality, attempts=attempts, within_budget=False)
