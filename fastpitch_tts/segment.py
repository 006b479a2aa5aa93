from __future__ import annotations

import re
from typing import Callable, List, NamedTuple, Optional, Sequence

from loguru import logger

from fastpitch_tts.tokenizer import Tokenizer

MAX_TOKEN_LENGTH = 240

# ASCII and full-width sentence terminators.
_SENTENCE_RE = re.compile(r"[^.!?。！？]+[.!?。！？]+")
_CLAUSE_DELIMITER_RE = re.compile(r"[,，、]")


def split_sentences(text: str) -> List[str]:
    """Return trimmed sentences, each ending in its terminator run.

    Only terminated runs count; text after the last terminator is dropped.
    Input without any terminator comes back as a single trimmed sentence.
    """

    sentences: List[str] = []
    for match in _SENTENCE_RE.finditer(text):
        sentence = match.group().strip()
        if sentence:
            sentences.append(sentence)
    if not sentences and text.strip():
        sentences.append(text.strip())
    return sentences


def split_clauses(text: str) -> List[str]:
    return [part.strip() for part in _CLAUSE_DELIMITER_RE.split(text) if part.strip()]


def split_words(text: str) -> List[str]:
    return text.split()


class SplitStrategy(NamedTuple):
    """One level of the segmentation cascade.

    ``joiner`` glues consecutive units back together while they fit; ``None``
    keeps every unit as its own chunk.
    """

    name: str
    split: Callable[[str], List[str]]
    joiner: Optional[str]


DEFAULT_STRATEGIES = (
    SplitStrategy("sentence", split_sentences, None),
    SplitStrategy("clause", split_clauses, ", "),
    SplitStrategy("word", split_words, " "),
)


class Segmenter:
    """Split text into chunks the spectrogram model can accept.

    Each strategy refines only the pieces the previous one could not bring
    under ``max_tokens``. A piece that is still too long after the last
    strategy (a single over-length word) is emitted as-is and left to fail
    token validation downstream.
    """

    def __init__(
        self,
        tokenizer: Tokenizer,
        max_tokens: int = MAX_TOKEN_LENGTH,
        strategies: Sequence[SplitStrategy] = DEFAULT_STRATEGIES,
    ) -> None:
        self.tokenizer = tokenizer
        self.max_tokens = max_tokens
        self.strategies = tuple(strategies)

    def token_count(self, text: str) -> int:
        return len(self.tokenizer.encode(text))

    def fits(self, text: str) -> bool:
        return self.token_count(text) <= self.max_tokens

    def segment(self, text: str) -> List[str]:
        chunks = self._refine(text, 0)
        if not chunks:
            logger.warning("segment.fallback_original chars={chars}", chars=len(text))
            return [text]
        logger.debug(
            "segment.done chars={chars} chunks={count}",
            chars=len(text),
            count=len(chunks),
        )
        return chunks

    def _refine(self, text: str, level: int) -> List[str]:
        if level >= len(self.strategies):
            logger.warning(
                "segment.oversized_unit tokens={tokens} max={max_tokens} text={text}",
                tokens=self.token_count(text),
                max_tokens=self.max_tokens,
                text=text,
            )
            return [text]

        strategy = self.strategies[level]
        units = strategy.split(text) or [text]
        if level > 0:
            logger.debug(
                "segment.refine strategy={name} units={count}",
                name=strategy.name,
                count=len(units),
            )

        chunks: List[str] = []
        current = ""
        for unit in units:
            if current and strategy.joiner is not None:
                candidate = f"{current}{strategy.joiner}{unit}"
                if self.fits(candidate):
                    current = candidate
                    continue
            if current:
                chunks.append(current)
                current = ""
            if self.fits(unit):
                current = unit
            else:
                chunks.extend(self._refine(unit, level + 1))
        if current:
            chunks.append(current)
        return chunks
