"""Merchant key extraction from free-text transaction descriptions."""

import re

_DIGIT = re.compile(r"\d")


def extract_merchant(description: str) -> str:
    """Derive the merchant grouping key from a transaction description.

    The first token is always kept so names such as "9th Ave Diner" survive.
    Following tokens are appended until one contains a digit, which drops the
    reference numbers banks append ("Netflix 23XAB" -> "Netflix").

    Names with a digit inside the name itself are cut short
    ("Henry's on 12th" -> "Henry's on"); reference numbers are far more common.

    Args:
        description: Raw transaction description.

    Returns:
        Merchant key, or an empty string for a blank description.
    """
    tokens = description.split()
    if not tokens:
        return ""

    key = tokens[0]
    for token in tokens[1:]:
        if _DIGIT.search(token):
            break
        key += " " + token
    return key


def merchant_for(transaction) -> str:
    """Return the merchant key attached at ingestion, deriving it if absent."""
    if transaction.merchant is not None:
        return transaction.merchant
    return extract_merchant(transaction.description)
