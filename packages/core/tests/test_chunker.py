"""Tests for sliding-window chunking of rule documents."""

import pytest

from rulegate_core.chunker import split_into_chunks


def test_short_text_is_one_chunk():
    assert split_into_chunks("hello", chunk_size=10, overlap=2) == ["hello"]


def test_empty_text_has_no_chunks():
    assert split_into_chunks("", chunk_size=10, overlap=2) == []


def test_consecutive_chunks_share_overlap():
    text = "".join(chr(ord("a") + i % 26) for i in range(2500))
    chunks = split_into_chunks(text, chunk_size=1000, overlap=200)

    assert [len(c) for c in chunks] == [1000, 1000, 900]
    for prev, nxt in zip(chunks, chunks[1:]):
        assert prev[-200:] == nxt[:200]
    assert chunks[0] + "".join(c[200:] for c in chunks[1:]) == text


def test_one_character_past_a_window_leaves_a_minimal_tail():
    text = "".join(chr(ord("a") + i % 26) for i in range(1801))
    chunks = split_into_chunks(text, chunk_size=1000, overlap=200)

    # The tail re-reads the 200 shared characters plus the one new character.
    assert [len(c) for c in chunks] == [1000, 1000, 201]
    assert chunks[-1] == text[1600:]
    assert chunks[0] + "".join(c[200:] for c in chunks[1:]) == text


def test_single_chunk_may_be_shorter_than_overlap():
    assert split_into_chunks("abc", chunk_size=10, overlap=5) == ["abc"]


def test_chunks_cover_the_whole_text():
    text = "x" * 37 + "END"
    chunks = split_into_chunks(text, chunk_size=10, overlap=3)
    assert chunks[-1].endswith("END")
    assert all(len(c) <= 10 for c in chunks)


def test_exact_multiple_does_not_emit_trailing_overlap_chunk():
    chunks = split_into_chunks("abcdefghij", chunk_size=10, overlap=5)
    assert chunks == ["abcdefghij"]


@pytest.mark.parametrize("size, overlap", [(0, 0), (10, 10), (10, -1)])
def test_invalid_parameters_raise(size, overlap):
    with pytest.raises(ValueError):
        split_into_chunks("abc", chunk_size=size, overlap=overlap)
