"""
Bilingual keyword filter for lesson posts and comments.

The filter is a plain substring scan over two static denylists plus three
structural patterns (long digit runs, emails, links). It never raises:
a rejected text is a normal result, not an error.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

# Chinese denylist, matched case-sensitively
SENSITIVE_WORDS_CN = (
    '广告', '推销', '代购', '微信', 'QQ', '联系方式',
    '骗子', '诈骗', '赌博', '色情', '暴力',
)

# English denylist, matched case-insensitively
SENSITIVE_WORDS_EN = (
    'spam', 'advertisement', 'promotion', 'buy now', 'click here',
    'scam', 'fraud', 'gambling', 'porn', 'violence',
)

# Checked in this order; only the first hit is reported
SUSPICIOUS_PATTERNS = (
    re.compile(r"\d{5,}", re.ASCII),            # phone numbers, QQ ids
    re.compile(r"[\w.-]+@[\w.-]+", re.ASCII),   # email addresses
    re.compile(r"https?://\S+"),                # links
)

LEET_REPLACEMENTS = (("a", "4"), ("e", "3"), ("i", "1"), ("o", "0"))


@dataclass
class FilterResult:
    is_clean: bool
    flagged_words: List[str] = field(default_factory=list)
    reason: Optional[str] = None

    def to_dict(self):
        return {
            "is_clean": self.is_clean,
            "flagged_words": list(self.flagged_words),
            "reason": self.reason,
        }


def filter_keywords(content: str) -> FilterResult:
    """Scan ``content`` against both denylists and the suspicious patterns.

    Every denylisted word found is reported (no word-boundary check, so
    "spammer" flags "spam"). Of the structural patterns only the first one
    that matches anywhere in the text is reported, with the matched text.
    """
    lower_content = content.lower()
    flagged_words = []

    for word in SENSITIVE_WORDS_CN:
        if word in content:
            flagged_words.append(word)

    for word in SENSITIVE_WORDS_EN:
        if word.lower() in lower_content:
            flagged_words.append(word)

    reason = None
    for pattern in SUSPICIOUS_PATTERNS:
        match = pattern.search(content)
        if match:
            reason = f"Contains suspicious pattern: {match.group(0)}"
            break

    return FilterResult(
        is_clean=not flagged_words and reason is None,
        flagged_words=flagged_words,
        reason=reason,
    )


def generate_keyword_variants(word: str) -> List[str]:
    """Expand a denylist word into the spellings people use to dodge it.

    Returns the word itself, its leet-speak form when that differs, and the
    letters separated by single spaces for words longer than two characters.
    """
    variants = [word]

    leet_speak = word
    for letter, digit in LEET_REPLACEMENTS:
        leet_speak = re.sub(letter, digit, leet_speak, flags=re.IGNORECASE)
    if leet_speak != word:
        variants.append(leet_speak)

    if len(word) > 2:
        variants.append(" ".join(word))

    return variants
