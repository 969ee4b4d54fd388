"""Amount formatting for receipts: grouped currency strings and amounts in words.

English uses western 3-3-3 digit grouping (``Rs. 1,234,567``); Nepali uses
the south-asian 2-2-3 grouping (``रु 12,34,567``). Both are pure functions of
the integer amount.
"""

from __future__ import annotations

from typing import Literal

Locale = Literal["en", "ne"]
GroupingStyle = Literal["western", "south_asian"]

CURRENCY_PREFIX: dict[str, str] = {"en": "Rs.", "ne": "रु"}

NEPALI_ZERO = "शून्य"
NEPALI_NEGATIVE = "ऋण"
ENGLISH_ZERO = "Zero"
ENGLISH_NEGATIVE = "Minus"
NEGATIVE_PREFIX: dict[str, str] = {"en": ENGLISH_NEGATIVE, "ne": NEPALI_NEGATIVE}

_TO_DEVANAGARI = str.maketrans("0123456789", "०१२३४५६७८९")

# Nepali has an individual word for every number below one hundred.
_NEPALI_BELOW_100: tuple[str, ...] = (
    "",
    "एक", "दुई", "तीन", "चार", "पाँच", "छ", "सात", "आठ", "नौ", "दश",
    "एघार", "बाह्र", "तेह्र", "चौध", "पन्ध्र", "सोह्र", "सत्र", "अठार", "उन्नाइस", "बीस",
    "एक्काइस", "बाइस", "तेइस", "चौबीस", "पच्चीस", "छब्बीस", "सत्ताइस", "अट्ठाइस", "उनन्तीस", "तीस",
    "एकतीस", "बत्तीस", "तेत्तीस", "चौँतीस", "पैँतीस", "छत्तीस", "सैँतीस", "अठतीस", "उनन्चालीस", "चालीस",
    "एकचालीस", "बयालीस", "त्रिचालीस", "चवालीस", "पैँतालीस", "छयालीस", "सतचालीस", "अठचालीस", "उनन्चास", "पचास",
    "एकाउन्न", "बाउन्न", "त्रिपन्न", "चउन्न", "पचपन्न", "छपन्न", "सन्ताउन्न", "अन्ठाउन्न", "उनन्साठी", "साठी",
    "एकसट्ठी", "बयसट्ठी", "त्रिसट्ठी", "चौसट्ठी", "पैँसट्ठी", "छयसट्ठी", "सतसट्ठी", "अठसट्ठी", "उनन्सत्तरी", "सत्तरी",
    "एकहत्तर", "बहत्तर", "त्रिहत्तर", "चौहत्तर", "पचहत्तर", "छयहत्तर", "सतहत्तर", "अठहत्तर", "उनासी", "असी",
    "एकासी", "बयासी", "त्रियासी", "चौरासी", "पचासी", "छयासी", "सतासी", "अठासी", "उनान्नब्बे", "नब्बे",
    "एकानब्बे", "बयानब्बे", "त्रियानब्बे", "चौरानब्बे", "पन्चानब्बे", "छयानब्बे", "सन्तानब्बे", "अन्ठानब्बे", "उनान्सय",
)

# Largest band first; each band's multiplier is spelled out recursively.
_NEPALI_BANDS: tuple[tuple[int, str], ...] = (
    (10_000_000, "करोड"),
    (100_000, "लाख"),
    (1_000, "हजार"),
    (100, "सय"),
)


def group_digits(value: int, style: GroupingStyle = "western") -> str:
    """Insert thousands separators into the absolute value of ``value``."""
    digits = str(abs(int(value)))
    if style == "western" or len(digits) <= 3:
        grouped = f"{int(digits):,}"
    else:
        head, tail = digits[:-3], digits[-3:]
        pairs: list[str] = []
        while len(head) > 2:
            pairs.insert(0, head[-2:])
            head = head[:-2]
        if head:
            pairs.insert(0, head)
        grouped = ",".join(pairs + [tail])
    return f"-{grouped}" if int(value) < 0 else grouped


def to_devanagari_digits(text: str) -> str:
    return text.translate(_TO_DEVANAGARI)


def _grouping_for(locale: str) -> GroupingStyle:
    return "south_asian" if locale == "ne" else "western"


def to_grouped_currency(amount: int, locale: Locale = "en", *, native_digits: bool = False) -> str:
    """``Rs. 1,234,567`` for English, ``रु 12,34,567`` for Nepali."""
    normalized = "ne" if locale == "ne" else "en"
    grouped = group_digits(amount, _grouping_for(normalized))
    if native_digits and normalized == "ne":
        grouped = to_devanagari_digits(grouped)
    return f"{CURRENCY_PREFIX[normalized]} {grouped}"


def _nepali_words(amount: int) -> str:
    if amount < 100:
        return _NEPALI_BELOW_100[amount]
    for band, unit in _NEPALI_BANDS:
        if amount >= band:
            head, rest = divmod(amount, band)
            words = f"{_nepali_words(head)} {unit}"
            return f"{words} {_nepali_words(rest)}" if rest else words
    raise AssertionError("unreachable")  # pragma: no cover


def to_words(amount: int, locale: Locale = "en") -> str:
    """Spell out an amount.

    English follows the fixed template ``Rupees {grouped} Only`` (``Rupees Zero
    Only`` for 0). Nepali decomposes by crore, lakh, thousand and hundred and
    returns the bare words, e.g. ``पाँच हजार``; 0 is ``शून्य``.
    """
    value = int(amount)
    if locale == "ne":
        if value == 0:
            return NEPALI_ZERO
        if value < 0:
            return f"{NEGATIVE_PREFIX['ne']} {_nepali_words(-value)}"
        return _nepali_words(value)

    if value == 0:
        return f"Rupees {ENGLISH_ZERO} Only"
    grouped = group_digits(abs(value), _grouping_for("en"))
    if value < 0:
        return f"Rupees {NEGATIVE_PREFIX['en']} {grouped} Only"
    return f"Rupees {grouped} Only"
