"""
FastPitch TTS pipeline (Segment → Synthesize → Assemble)

Input text is split into chunks that fit the spectrogram model's token
window, every chunk runs through the spectrogram model and the vocoder, and
the per-chunk waveforms are joined with a fixed silence gap:

text → chunks → spectrograms → waveforms → one mono float32 buffer

A call either returns the complete waveform or raises the ``SynthesisError``
of the first stage that failed; partial audio is never returned. The
``Toolchain`` class exposes the pipeline as CLI commands.
"""

from __future__ import annotations

import os
import sys
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import fire
import numpy as np
from loguru import logger
from pydantic import BaseModel, ConfigDict

from fastpitch_tts.audio import assemble, to_sample_buffer, write_wav
from fastpitch_tts.config import SynthesisConfig
from fastpitch_tts.errors import (
    EmptyInputError,
    InputTooLongError,
    SpecGenerationError,
    SynthesisError,
    WaveformGenerationError,
)
from fastpitch_tts.inference import InferenceBackend, TorchScriptBackend, make_token_array
from fastpitch_tts.segment import Segmenter
from fastpitch_tts.tokenizer import SymbolTokenizer, Tokenizer


def _is_usable(array: Optional[np.ndarray]) -> bool:
    return array is not None and np.size(array) > 0


class SegmentAudio(BaseModel):
    """Waveform rendered for one chunk, tagged with its reading-order index."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    index: int
    text: str
    token_count: int
    samples: np.ndarray
    sample_rate: int

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate


class Synthesizer:
    """Turns text of any length into one waveform using the injected capabilities."""

    def __init__(
        self,
        tokenizer: Tokenizer,
        backend: InferenceBackend,
        config: Optional[SynthesisConfig] = None,
    ) -> None:
        self.tokenizer = tokenizer
        self.backend = backend
        self.config = config or SynthesisConfig()
        self.segmenter = Segmenter(tokenizer, max_tokens=self.config.max_token_length)

    def segment(self, text: str) -> List[str]:
        return self.segmenter.segment(text)

    def synthesize_segment(self, text: str) -> np.ndarray:
        """Render a single chunk that must already fit the token window."""
        return self._render_segment(1, text).samples

    def _render_segment(self, index: int, text: str) -> SegmentAudio:
        token_ids = self.tokenizer.encode(text)
        count = len(token_ids)
        if count < self.config.min_token_length:
            raise EmptyInputError(
                f"chunk {index} encodes to {count} tokens "
                f"(min {self.config.min_token_length})"
            )
        if count > self.config.max_token_length:
            raise InputTooLongError(count, self.config.max_token_length)

        logger.debug(
            "synthesize.segment index={index} tokens={tokens} chars={chars}",
            index=index,
            tokens=count,
            chars=len(text),
        )
        tokens = make_token_array(token_ids)

        try:
            spec = self.backend.synthesize_spectrogram(tokens)
        except SynthesisError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise SpecGenerationError(f"spectrogram stage raised: {exc}") from exc
        if not _is_usable(spec):
            raise SpecGenerationError(f"spectrogram stage returned no spec for chunk {index}")

        try:
            waveform = self.backend.vocode(spec)
        except SynthesisError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise WaveformGenerationError(f"vocoder stage raised: {exc}") from exc
        if not _is_usable(waveform):
            raise WaveformGenerationError(
                f"vocoder stage returned no waveform for chunk {index}"
            )

        return SegmentAudio(
            index=index,
            text=text,
            token_count=count,
            samples=to_sample_buffer(waveform),
            sample_rate=self.config.sample_rate,
        )

    def synthesize_segments(self, chunks: Sequence[str]) -> List[SegmentAudio]:
        """Render chunks in reading order, concurrently when ``max_workers > 1``."""

        workers = min(self.config.max_workers, len(chunks))
        if workers <= 1:
            return [
                self._render_segment(index, chunk)
                for index, chunk in enumerate(chunks, start=1)
            ]

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures: Dict[Future[SegmentAudio], int] = {
                pool.submit(self._render_segment, index, chunk): index
                for index, chunk in enumerate(chunks, start=1)
            }
            done, pending = wait(futures, return_when=FIRST_EXCEPTION)
            failed = [
                future
                for future in futures
                if future in done and future.exception() is not None
            ]
            if failed:
                cancelled = sum(1 for future in pending if future.cancel())
                logger.error(
                    "synthesize.failed index={index} cancelled={cancelled}",
                    index=futures[failed[0]],
                    cancelled=cancelled,
                )
                failed[0].result()
            results = {futures[future]: future.result() for future in futures}
        return [results[index] for index in sorted(results)]

    def generate(self, text: str) -> np.ndarray:
        """Synthesize ``text`` into one mono float32 buffer at ``config.sample_rate``."""

        if not text.strip():
            raise EmptyInputError("input text is blank")

        chunks = self.segment(text)
        logger.info(
            "generate.start chars={chars} chunks={count}",
            chars=len(text),
            count=len(chunks),
        )
        segments = self.synthesize_segments(chunks)
        for segment in segments:
            logger.debug(
                "Chunk {} / {}: tokens={} duration={:.2f}s",
                segment.index,
                len(segments),
                segment.token_count,
                segment.duration,
            )

        if len(segments) == 1:
            samples = segments[0].samples
        else:
            samples = assemble(
                [segment.samples for segment in segments],
                sample_rate=self.config.sample_rate,
                silence_seconds=self.config.silence_seconds,
            )
        logger.info(
            "generate.done chunks={count} samples={samples} duration={duration:.2f}s",
            count=len(segments),
            samples=len(samples),
            duration=len(samples) / self.config.sample_rate,
        )
        return samples


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

MODELS_DIR = Path(os.environ.get("FASTPITCH_MODELS_DIR", "/data/models"))
TOKENS_FILE = "tokens.txt"


class Toolchain:
    """Text-to-speech commands backed by a FastPitch/HiFi-GAN model directory."""

    def __init__(
        self,
        debug: bool = False,
        model_dir: Path | str = MODELS_DIR,
        device: Optional[str] = None,
        max_workers: int = 1,
        silence_seconds: float = 0.3,
        tokenizer: Optional[Tokenizer] = None,
        backend: Optional[InferenceBackend] = None,
    ) -> None:
        """Configure logging, the model directory and synthesis options.

        Args:
            debug: Enable verbose logging for manual runs.
            model_dir: Directory holding ``tokens.txt``, ``FastPitch.pt`` and
                ``HiFiGan.pt``.
            device: Torch device for inference; auto-detected when omitted.
            max_workers: Chunks synthesized concurrently.
            silence_seconds: Silence inserted between chunks.
            tokenizer: Optional preconfigured tokenizer.
            backend: Optional preconfigured inference backend.
        """
        self.debug = debug
        self.model_dir = Path(model_dir)
        self.device = device
        self.config = SynthesisConfig(
            max_workers=max_workers, silence_seconds=silence_seconds
        )
        self._tokenizer = tokenizer
        self._backend = backend

    # —————————————————— Utilities ——————————————————

    @staticmethod
    def _read_text(text: str, text_file: Path | str) -> str:
        if text_file:
            path = Path(text_file)
            if not path.exists():
                raise FileNotFoundError(f"Text file {path} does not exist.")
            return path.read_text(encoding="utf-8")
        if not text:
            raise ValueError("Provide --text or --text_file.")
        return str(text)

    def tokenizer(self) -> Tokenizer:
        if self._tokenizer is None:
            self._tokenizer = SymbolTokenizer.from_file(self.model_dir / TOKENS_FILE)
        return self._tokenizer

    def backend(self) -> InferenceBackend:
        if self._backend is None:
            self._backend = TorchScriptBackend.from_directory(
                self.model_dir, device=self.device
            )
        return self._backend

    # —————————————————— Commands ——————————————————

    def segments(self, text: str = "", text_file: Path | str = "") -> List[str]:
        """Show how text would be chunked, one ``[tokens] chunk`` line each."""
        segmenter = Segmenter(self.tokenizer(), max_tokens=self.config.max_token_length)
        chunks = segmenter.segment(self._read_text(text, text_file))
        return [f"[{segmenter.token_count(chunk):3d}] {chunk}" for chunk in chunks]

    def speak(
        self,
        text: str = "",
        text_file: Path | str = "",
        out_file: Path | str = "speech.wav",
    ) -> Path:
        """Synthesize text and write it as a WAV file.

        Args:
            text: Text to speak; ignored when ``text_file`` is given.
            text_file: UTF-8 file to read the text from.
            out_file: Destination WAV path.

        Returns:
            Path of the written WAV file.
        """
        content = self._read_text(text, text_file)
        synthesizer = Synthesizer(self.tokenizer(), self.backend(), self.config)
        samples = synthesizer.generate(content)
        out_path = write_wav(out_file, samples, self.config.sample_rate)
        logger.info(
            "speak.done out_file={out_file} duration={duration:.1f}s",
            out_file=out_path,
            duration=len(samples) / self.config.sample_rate,
        )
        return out_path


def main(argv: Optional[List[str]] = None) -> None:
    argv = sys.argv[1:] if argv is None else argv
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if "--debug" in argv else "INFO")
    fire.Fire(Toolchain, command=argv)


if __name__ == "__main__":
    main()
