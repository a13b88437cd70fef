"""
Amount-in-words for quotation totals (Bangladeshi numbering scale).

    12,345,678  ->  "One Crore Twenty Three Lac Forty Five Thousand
                     Six Hundred Seventy Eight Taka Only."

Fractions are dropped (floor of the absolute value); zero, NaN and infinity
all read "Zero Taka Only."
"""

import math

ZERO_PHRASE = "Zero Taka Only."
SUFFIX = " Taka Only."

ONES = ["", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
        "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
        "Seventeen", "Eighteen", "Nineteen"]
TENS = ["", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy",
        "Eighty", "Ninety"]

CRORE = 10_000_000
LAC = 100_000
THOUSAND = 1_000


def _two_digits(n: int) -> str:
    if n < 20:
        return ONES[n]
    return f"{TENS[n // 10]} {ONES[n % 10]}".strip()


def _three_digits(n: int) -> str:
    hundreds, rest = divmod(n, 100)
    if not hundreds:
        return _two_digits(rest)
    return f"{ONES[hundreds]} Hundred {_two_digits(rest)}".strip()


def _integer_words(n: int) -> str:
    crore, n = divmod(n, CRORE)
    lac, n = divmod(n, LAC)
    thousand, rest = divmod(n, THOUSAND)

    parts = []
    if crore:
        # 1000+ crore reuses the same scale for the crore count
        parts.append(_integer_words(crore) if crore > 999 else _three_digits(crore))
        parts.append("Crore")
    if lac:
        parts.extend([_three_digits(lac), "Lac"])
    if thousand:
        parts.extend([_three_digits(thousand), "Thousand"])
    if rest:
        parts.append(_three_digits(rest))
    return " ".join(parts)


def amount_to_words(amount) -> str:
    """English phrase for an amount of taka, e.g. 100 -> "One Hundred Taka Only."."""
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return ZERO_PHRASE
    if not math.isfinite(value):
        return ZERO_PHRASE

    n = math.floor(abs(value))
    if n == 0:
        return ZERO_PHRASE
    words = _integer_words(n) + SUFFIX
    return " ".join(words.split())
