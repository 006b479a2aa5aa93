from __future__ import annotations

import re
import unicodedata
from pathlib import Path
from typing import Dict, List, Mapping, Protocol

from loguru import logger

from fastpitch_tts.errors import TokenizerInitializationError

_SYMBOL_ID_RE = re.compile(r"^(.+) (\d+)$")
_WHITESPACE_RE = re.compile(r"\s+")


class Tokenizer(Protocol):
    """Maps text to the integer ids the spectrogram model consumes.

    Implementations must be deterministic: the segmenter re-encodes candidate
    chunks repeatedly while measuring them.
    """

    def encode(self, text: str) -> List[int]: ...


def normalize_text(text: str) -> str:
    """NFKC-normalize, lowercase, and collapse runs of whitespace."""

    text = unicodedata.normalize("NFKC", text).lower()
    return _WHITESPACE_RE.sub(" ", text).strip()


class SymbolTokenizer:
    """Character-level tokenizer backed by a ``tokens.txt`` symbol table."""

    def __init__(self, symbols: Mapping[str, int]) -> None:
        if not symbols:
            raise TokenizerInitializationError("symbol table is empty")
        self.symbols: Dict[str, int] = dict(symbols)

    @classmethod
    def from_file(cls, path: Path | str) -> "SymbolTokenizer":
        """Load ``symbol id`` lines, or bare symbols numbered by line order."""

        path = Path(path)
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as exc:
            raise TokenizerInitializationError(
                f"cannot read symbol table {path}: {exc}"
            ) from exc

        symbols: Dict[str, int] = {}
        entries = [line for line in lines if line]
        for index, line in enumerate(entries):
            match = _SYMBOL_ID_RE.match(line)
            if match:
                symbols[match.group(1)] = int(match.group(2))
            else:
                symbols[line] = index
        logger.debug(
            "tokenizer.loaded path={path} symbols={count}", path=path, count=len(symbols)
        )
        return cls(symbols)

    def encode(self, text: str) -> List[int]:
        ids: List[int] = []
        for ch in normalize_text(text):
            token_id = self.symbols.get(ch)
            if token_id is not None:
                ids.append(token_id)
        return ids
