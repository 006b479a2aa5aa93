from typing import List, Optional

import numpy as np
import pytest

from fastpitch_tts.config import SynthesisConfig
from fastpitch_tts.workflow import Synthesizer

SAMPLES_PER_FRAME = 4


class FakeTokenizer:
    """One token per non-whitespace character."""

    def __init__(self) -> None:
        self.calls = 0

    def encode(self, text: str) -> List[int]:
        self.calls += 1
        return [ord(ch) % 256 for ch in text if not ch.isspace()]


class FakeBackend:
    """Spectrogram mirrors the token ids; the vocoder repeats each frame."""

    def __init__(self) -> None:
        self.spectrogram_inputs: List[np.ndarray] = []

    def synthesize_spectrogram(self, tokens: np.ndarray) -> Optional[np.ndarray]:
        self.spectrogram_inputs.append(tokens)
        return tokens.astype(np.float32) / 256.0

    def vocode(self, spec: np.ndarray) -> Optional[np.ndarray]:
        return np.repeat(spec.reshape(-1), SAMPLES_PER_FRAME).astype(np.float64)


@pytest.fixture()
def tokenizer() -> FakeTokenizer:
    return FakeTokenizer()


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def synthesizer(tokenizer: FakeTokenizer, backend: FakeBackend) -> Synthesizer:
    return Synthesizer(tokenizer, backend, SynthesisConfig())
