"""Tests for citation and language utilities."""

from __future__ import annotations

from draftsmith.utils.citations import find_citations, has_citation, strip_citations
from draftsmith.utils.language import count_cjk_chars, from_zh_numeral, is_cjk_language, to_zh_numeral


def test_find_citations_ordered() -> None:
    """It should find APA, CJK and numeric citations in order of appearance."""

    text = "Plants grow [1] as shown (Smith et al., 2021) and （王小明，2020）."
    assert find_citations(text) == ["[1]", "(Smith et al., 2021)", "（王小明，2020）"]
    assert has_citation("see (Lee & Park, 2019)")
    assert not has_citation("no sources (in 2021 only) here")


def test_strip_citations_tidies_spacing() -> None:
    """It should remove citations and the whitespace they leave behind."""

    assert strip_citations("Plants grow (Smith, 2021), mostly [2-3].") == "Plants grow, mostly."


def test_cjk_language_detection_and_counting() -> None:
    """It should detect CJK language labels and count CJK code points only."""

    assert is_cjk_language("中文")
    assert is_cjk_language("zh-TW")
    assert is_cjk_language("Japanese")
    assert not is_cjk_language("English")
    assert count_cjk_chars("光合作用 is 光") == 5


def test_zh_numerals_round_trip_edges() -> None:
    """It should render and read Chinese numerals including the tens forms."""

    assert [to_zh_numeral(n) for n in (1, 10, 11, 20, 23)] == ["一", "十", "十一", "二十", "二十三"]
    assert from_zh_numeral("二十三") == 23
    assert from_zh_numeral("十") == 10
    assert from_zh_numeral("abc") is None
