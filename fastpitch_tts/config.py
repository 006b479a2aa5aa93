from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fastpitch_tts.audio import SAMPLE_RATE, SILENCE_SECONDS, silence_samples
from fastpitch_tts.segment import MAX_TOKEN_LENGTH


class SynthesisConfig(BaseModel):
    """Token bounds and output format shared by every synthesis call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_token_length: int = Field(
        2, ge=1, description="Fewest tokens the spectrogram model accepts."
    )
    max_token_length: int = Field(
        MAX_TOKEN_LENGTH, ge=1, description="Most tokens the spectrogram model accepts."
    )
    sample_rate: int = Field(
        SAMPLE_RATE, gt=0, description="Output sample rate in Hz (fixed by the vocoder)."
    )
    silence_seconds: float = Field(
        SILENCE_SECONDS, ge=0.0, description="Silence inserted between consecutive chunks."
    )
    max_workers: int = Field(
        1, ge=1, description="Chunks synthesized concurrently; 1 keeps it sequential."
    )

    @model_validator(mode="after")
    def _validate_token_bounds(self) -> "SynthesisConfig":
        if self.min_token_length > self.max_token_length:
            raise ValueError(
                "min_token_length must not exceed max_token_length "
                f"({self.min_token_length} > {self.max_token_length})"
            )
        return self

    @property
    def silence_samples(self) -> int:
        return silence_samples(self.sample_rate, self.silence_seconds)
