from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import numpy as np
import soundfile as sf
from loguru import logger

from fastpitch_tts.errors import BufferCreationError

SAMPLE_RATE = 22_050
SILENCE_SECONDS = 0.3


def silence_samples(
    sample_rate: int = SAMPLE_RATE, seconds: float = SILENCE_SECONDS
) -> int:
    return int(round(sample_rate * seconds))


def to_sample_buffer(array: Any) -> np.ndarray:
    """Flatten a model output into a mono float32 buffer; values are cast, not resampled."""

    try:
        return np.asarray(array, dtype=np.float32).reshape(-1)
    except (TypeError, ValueError, MemoryError) as exc:
        raise BufferCreationError(f"cannot convert model output to samples: {exc}") from exc


def assemble(
    buffers: Sequence[np.ndarray],
    sample_rate: int = SAMPLE_RATE,
    silence_seconds: float = SILENCE_SECONDS,
) -> np.ndarray:
    """Concatenate chunk buffers in order with a silence gap between neighbours.

    The output has ``sum(len(b)) + (n - 1) * silence`` samples. Gaps are never
    written, so they hold the zeros the buffer was allocated with.
    """

    if not buffers:
        raise BufferCreationError("no buffers to assemble")

    gap = silence_samples(sample_rate, silence_seconds)
    total_length = sum(len(buffer) for buffer in buffers) + (len(buffers) - 1) * gap
    try:
        output = np.zeros(total_length, dtype=np.float32)
    except (MemoryError, ValueError) as exc:
        raise BufferCreationError(
            f"cannot allocate {total_length} samples: {exc}"
        ) from exc

    position = 0
    last = len(buffers) - 1
    for index, buffer in enumerate(buffers):
        frames = len(buffer)
        output[position : position + frames] = buffer
        position += frames
        if index < last:
            position += gap

    logger.debug(
        "assemble.done buffers={count} samples={samples} gap={gap}",
        count=len(buffers),
        samples=total_length,
        gap=gap,
    )
    return output


def write_wav(path: Path | str, samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> Path:
    """Write mono samples as 16-bit PCM WAV."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    sf.write(str(path), samples, sample_rate, subtype="PCM_16", format="WAV")
    logger.debug(
        "Saved '{}' duration={:.1f}s",
        path,
        len(samples) / sample_rate,
    )
    return path
