import pytest

from app.utils.moderation import filter_keywords, generate_keyword_variants


@pytest.mark.parametrize("content", [
    "",
    "今天学了声调, 很有意思",
    "I finally understand the third tone!",
    "Call 1234 times",
])
def test_clean_content_passes(content):
    result = filter_keywords(content)

    assert result.is_clean
    assert result.flagged_words == []
    assert result.reason is None


def test_chinese_word_and_digit_run_are_both_reported():
    result = filter_keywords("请加我微信123456")

    assert not result.is_clean
    assert result.flagged_words == ["微信"]
    assert result.reason == "Contains suspicious pattern: 123456"


def test_email_is_reported_as_suspicious_pattern():
    result = filter_keywords("contact me at foo@bar.com")

    assert not result.is_clean
    assert result.flagged_words == []
    assert "foo@bar.com" in result.reason


def test_url_is_reported_as_suspicious_pattern():
    result = filter_keywords("see https://example.com/free")

    assert not result.is_clean
    assert result.reason == "Contains suspicious pattern: https://example.com/free"


def test_digit_run_wins_over_later_patterns():
    result = filter_keywords("mail foo@bar.com or call 5551234")

    assert result.reason == "Contains suspicious pattern: 5551234"


def test_english_words_match_case_insensitively_as_substrings():
    result = filter_keywords("Total SPAMMER, CLICK HERE")

    assert result.flagged_words == ["spam", "click here"]
    assert result.reason is None


def test_chinese_matching_is_case_sensitive():
    assert filter_keywords("加我qq").is_clean
    assert filter_keywords("加我QQ").flagged_words == ["QQ"]


def test_to_dict_shape():
    assert filter_keywords("scam").to_dict() == {
        "is_clean": False,
        "flagged_words": ["scam"],
        "reason": None,
    }


def test_keyword_variants():
    assert generate_keyword_variants("apple") == ["apple", "4ppl3", "a p p l e"]


def test_keyword_variants_skip_unchanged_leet_and_short_words():
    assert generate_keyword_variants("xy") == ["xy"]
    assert generate_keyword_variants("Ok") == ["Ok", "0k"]
    assert generate_keyword_variants("QQ") == ["QQ"]
