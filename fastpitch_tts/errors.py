from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Stages that can abort a synthesis call."""

    EMPTY_INPUT = "empty_input"
    INPUT_TOO_LONG = "input_too_long"
    SPEC_GENERATION_FAILED = "spec_generation_failed"
    WAVEFORM_GENERATION_FAILED = "waveform_generation_failed"
    BUFFER_CREATION_FAILED = "buffer_creation_failed"
    MODEL_LOADING_FAILED = "model_loading_failed"
    TOKENIZER_INITIALIZATION_FAILED = "tokenizer_initialization_failed"
    SYNTHESIS_FAILED = "synthesis_failed"


class SynthesisError(RuntimeError):
    """Base error; ``kind`` identifies the failing stage."""

    kind: ErrorKind = ErrorKind.SYNTHESIS_FAILED

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.kind.value.replace("_", " "))


class EmptyInputError(SynthesisError):
    kind = ErrorKind.EMPTY_INPUT


class InputTooLongError(SynthesisError):
    kind = ErrorKind.INPUT_TOO_LONG

    def __init__(self, token_count: int, max_tokens: Optional[int] = None) -> None:
        self.token_count = token_count
        limit = f" (max {max_tokens})" if max_tokens is not None else ""
        super().__init__(f"input too long: {token_count} tokens{limit}")


class SpecGenerationError(SynthesisError):
    kind = ErrorKind.SPEC_GENERATION_FAILED


class WaveformGenerationError(SynthesisError):
    kind = ErrorKind.WAVEFORM_GENERATION_FAILED


class BufferCreationError(SynthesisError):
    kind = ErrorKind.BUFFER_CREATION_FAILED


class ModelLoadingError(SynthesisError):
    kind = ErrorKind.MODEL_LOADING_FAILED

    def __init__(self, model: str) -> None:
        self.model = model
        super().__init__(f"failed to load model {model}")


class TokenizerInitializationError(SynthesisError):
    kind = ErrorKind.TOKENIZER_INITIALIZATION_FAILED
