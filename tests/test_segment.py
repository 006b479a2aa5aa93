from typing import List

import pytest

from fastpitch_tts.segment import (
    DEFAULT_STRATEGIES,
    Segmenter,
    split_clauses,
    split_sentences,
    split_words,
)

from conftest import FakeTokenizer


def _segmenter(max_tokens: int = 240) -> Segmenter:
    return Segmenter(FakeTokenizer(), max_tokens=max_tokens)


def test_split_sentences_handles_ascii_and_full_width_terminators() -> None:
    assert split_sentences("Wait... what?! Yes.") == ["Wait...", "what?!", "Yes."]
    assert split_sentences("你好。再见！真的？") == ["你好。", "再见！", "真的？"]


def test_split_sentences_drops_unterminated_tail() -> None:
    assert split_sentences("First one. trailing words ") == ["First one."]
    assert split_sentences("  no punctuation here  ") == ["no punctuation here"]
    assert split_sentences("   ") == []


def test_segment_drops_text_after_last_terminator() -> None:
    assert _segmenter().segment("Hello there. world") == ["Hello there."]


def test_split_clauses_and_words() -> None:
    assert split_clauses("a, b，c、 d ,, e") == ["a", "b", "c", "d", "e"]
    assert split_words("  one\ttwo \n three ") == ["one", "two", "three"]


def test_single_sentence_stays_whole() -> None:
    assert _segmenter().segment("Hello world.") == ["Hello world."]


def test_two_sentences_become_two_chunks() -> None:
    assert _segmenter().segment("Hi there. Goodbye now.") == ["Hi there.", "Goodbye now."]


def test_text_without_terminators_is_trimmed() -> None:
    assert _segmenter().segment("  just some words  ") == ["just some words"]


def test_blank_text_falls_back_to_original() -> None:
    assert _segmenter().segment("   ") == ["   "]
    assert _segmenter().segment("") == [""]


def test_long_sentence_is_packed_by_clauses() -> None:
    # "aaaa, bbbb" is 9 tokens; adding "cccc." would make 15.
    assert _segmenter(10).segment("aaaa, bbbb, cccc.") == ["aaaa, bbbb", "cccc."]


def test_long_sentence_without_commas_is_packed_by_words() -> None:
    chunks = _segmenter(10).segment("alpha beta gamma delta.")
    assert chunks == ["alpha beta", "gamma", "delta."]


def test_oversized_clause_falls_through_to_words() -> None:
    chunks = _segmenter(10).segment("ab, cdefg hijkl mn, op.")
    assert chunks == ["ab", "cdefg hijkl", "mn", "op."]


def test_oversized_word_is_emitted_alone() -> None:
    segmenter = _segmenter(5)
    chunks = segmenter.segment("abcdefghij xy.")
    assert chunks == ["abcdefghij", "xy."]
    assert segmenter.token_count(chunks[0]) > 5


def test_sentences_are_not_merged_even_when_short() -> None:
    chunks = _segmenter(240).segment("One. Two. Three.")
    assert chunks == ["One.", "Two.", "Three."]


def test_comma_sentence_over_default_limit_splits_on_clauses() -> None:
    clauses = [f"clause number {i} carries several more words" for i in range(12)]
    sentence = ", ".join(clauses) + "."
    segmenter = _segmenter()
    assert segmenter.token_count(sentence) > 240

    chunks = segmenter.segment(sentence)

    assert len(chunks) >= 2
    assert all(segmenter.token_count(chunk) <= 240 for chunk in chunks)
    assert ", ".join(chunks) == sentence


def test_truncated_strategy_chain_accepts_oversized_sentence() -> None:
    segmenter = Segmenter(FakeTokenizer(), max_tokens=5, strategies=DEFAULT_STRATEGIES[:1])
    assert segmenter.segment("Too long for five. Ok.") == ["Too long for five.", "Ok."]


TEXTS: List[str] = [
    "Hello world.",
    "The quick brown fox, which was very quick, jumped over the lazy dog! Did it? Yes.",
    "No terminator at all, only commas, and words",
    "Supercalifragilisticexpialidocious is a long word. Short.",
    "一二三四五六七八九十，一二三四五六七八九十、一二三四五六七八九十。好！",
    "Line one.\nLine two?\n\nLine three...",
]


@pytest.mark.parametrize("text", TEXTS)
@pytest.mark.parametrize("max_tokens", [8, 16, 240])
def test_chunks_are_non_blank_and_bounded(text: str, max_tokens: int) -> None:
    segmenter = _segmenter(max_tokens)
    chunks = segmenter.segment(text)
    assert chunks, "segment returned no chunks"
    for chunk in chunks:
        assert chunk.strip(), "blank chunk emitted"
        if segmenter.token_count(chunk) > max_tokens:
            assert len(chunk.split()) == 1, f"oversized multi-word chunk: {chunk!r}"


@pytest.mark.parametrize("text", TEXTS)
def test_resegmenting_a_sentence_chunk_is_stable(text: str) -> None:
    segmenter = _segmenter()
    for chunk in segmenter.segment(text):
        assert segmenter.segment(chunk) == [chunk]
