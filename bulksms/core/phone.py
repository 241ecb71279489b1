"""Destination number cleaning.

Raw tokens are reduced to digits and resolved against an ordered list of
regions. The first region for which the digits form a valid number wins, so
the most common region should be listed first.
"""

from concurrent.futures import ThreadPoolExecutor
import re
from typing import Iterable, Optional, Sequence

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

MSISDN_PATTERN = re.compile(r"^[1-9][0-9]{8,14}$")


def digits_only(value: str) -> str:
    text = str(value or "")
    if text.isdigit() and text.isascii():
        return text
    return "".join(ch for ch in text if "0" <= ch <= "9")


def to_msisdn(raw: str, countries: Sequence[str]) -> Optional[str]:
    """Return the canonical MSISDN for ``raw`` or ``None`` when no region accepts it."""

    digits = digits_only(raw)
    if not digits:
        return None
    for region in countries:
        try:
            parsed = phonenumbers.parse(digits, region)
        except NumberParseException:
            continue
        if not phonenumbers.is_valid_number_for_region(parsed, region):
            continue
        msisdn = phonenumbers.format_number(parsed, PhoneNumberFormat.E164).lstrip("+")
        if MSISDN_PATTERN.match(msisdn):
            return msisdn
    return None


def normalize_msisdns(
    raw_numbers: Iterable[str],
    countries: Sequence[str],
    *,
    max_workers: int | None = None,
) -> list[str]:
    """Clean, validate and deduplicate ``raw_numbers``.

    Invalid tokens are dropped silently; callers learn how many were dropped
    from the size difference. With ``max_workers`` the per-number work runs in
    a thread pool; each result is collected from the pool in order, and the set
    is built afterwards on the calling thread.
    """

    numbers = list(raw_numbers)
    regions = list(countries)
    if not regions:
        return []

    if max_workers and max_workers > 1 and len(numbers) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            resolved = list(pool.map(lambda raw: to_msisdn(raw, regions), numbers))
    else:
        resolved = [to_msisdn(raw, regions) for raw in numbers]

    return sorted({msisdn for msisdn in resolved if msisdn})
