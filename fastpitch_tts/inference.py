from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Sequence

import numpy as np
import torch
from loguru import logger

from fastpitch_tts.errors import ModelLoadingError

SPECTROGRAM_MODEL_FILE = "FastPitch.pt"
VOCODER_MODEL_FILE = "HiFiGan.pt"


class InferenceBackend(Protocol):
    """The two opaque model stages.

    Either method may return ``None`` when the model produced no usable
    output; the caller turns that into a stage-specific error.
    """

    def synthesize_spectrogram(self, tokens: np.ndarray) -> Optional[np.ndarray]: ...

    def vocode(self, spec: np.ndarray) -> Optional[np.ndarray]: ...


def make_token_array(token_ids: Sequence[int]) -> np.ndarray:
    """Pack token ids into the ``[1, N]`` int32 batch the spectrogram model expects."""

    return np.asarray(token_ids, dtype=np.int32).reshape(1, len(token_ids))


def _named_output(output: Any, name: str) -> Optional[torch.Tensor]:
    if isinstance(output, torch.Tensor):
        return output
    if isinstance(output, dict):
        return output.get(name)
    if isinstance(output, (tuple, list)) and output:
        return output[0]
    return None


class TorchScriptBackend:
    """Runs a spectrogram model and a vocoder held as torch callables."""

    def __init__(
        self,
        spectrogram_model: Callable[..., Any],
        vocoder: Callable[..., Any],
        device: str = "cpu",
    ) -> None:
        self.spectrogram_model = spectrogram_model
        self.vocoder = vocoder
        self.device = device

    @classmethod
    def from_directory(
        cls, model_dir: Path | str, device: Optional[str] = None
    ) -> "TorchScriptBackend":
        """Load ``FastPitch.pt`` and ``HiFiGan.pt`` TorchScript exports."""

        model_dir = Path(model_dir)
        device = device or ("cuda" if torch.cuda.is_available() else "cpu")
        models = []
        for name, filename in (
            ("FastPitch", SPECTROGRAM_MODEL_FILE),
            ("HiFiGAN", VOCODER_MODEL_FILE),
        ):
            try:
                model = torch.jit.load(str(model_dir / filename), map_location=device)
            except (OSError, RuntimeError, ValueError) as exc:
                raise ModelLoadingError(name) from exc
            model.eval()
            models.append(model)
        logger.info(
            "inference.loaded model_dir={model_dir} device={device}",
            model_dir=model_dir,
            device=device,
        )
        return cls(models[0], models[1], device=device)

    def _run(
        self, model: Callable[..., Any], array: np.ndarray, name: str
    ) -> Optional[np.ndarray]:
        inputs = torch.from_numpy(np.ascontiguousarray(array)).to(self.device)
        with torch.inference_mode():
            output = _named_output(model(inputs), name)
        if output is None:
            return None
        return output.detach().cpu().numpy()

    def synthesize_spectrogram(self, tokens: np.ndarray) -> Optional[np.ndarray]:
        return self._run(self.spectrogram_model, tokens.astype(np.int64), "spec")

    def vocode(self, spec: np.ndarray) -> Optional[np.ndarray]:
        return self._run(self.vocoder, spec, "waveform")
