import pytest

from bulksms.core.phone import MSISDN_PATTERN, digits_only, normalize_msisdns, to_msisdn


def test_local_number_gets_country_code():
    assert normalize_msisdns(["0821234567"], ["ZA"]) == ["27821234567"]


def test_garbage_and_short_numbers_are_dropped():
    assert normalize_msisdns(["abc", "123"], ["ZA"]) == []


def test_formatting_characters_are_stripped():
    assert normalize_msisdns(["(082) 123-4567", "+27 82 123 4567"], ["ZA"]) == ["27821234567"]


def test_duplicates_collapse_to_one_entry():
    result = normalize_msisdns(["0821234567", "27821234567", "082 123 4567", "0821234568"], ["ZA"])
    assert sorted(result) == ["27821234567", "27821234568"]
    assert len(result) == len(set(result))


def test_later_country_is_tried_when_first_does_not_match():
    assert normalize_msisdns(["07400 123456"], ["ZA", "GB"]) == ["447400123456"]
    assert normalize_msisdns(["0821234567"], ["GB", "ZA"]) == ["27821234567"]


def test_number_valid_in_no_listed_country_is_dropped():
    assert normalize_msisdns(["07400 123456"], ["ZA"]) == []


def test_empty_country_list_drops_everything():
    assert normalize_msisdns(["0821234567"], []) == []


def test_every_result_matches_msisdn_pattern():
    raw = ["0821234567", "0831234567", "+44 7400 123456", "n/a", "", "0000000000", "27 72 123 4567"]
    result = normalize_msisdns(raw, ["ZA", "GB"])
    assert result
    assert all(MSISDN_PATTERN.match(msisdn) for msisdn in result)


def test_membership_is_stable_across_calls():
    raw = ["0821234567", "0831234567", "0821234567", "bogus"]
    assert set(normalize_msisdns(raw, ["ZA"])) == set(normalize_msisdns(list(reversed(raw)), ["ZA"]))


def test_parallel_normalization_matches_sequential():
    raw = [f"08212345{i:02d}" for i in range(100)] * 3 + ["junk"] * 10
    sequential = normalize_msisdns(raw, ["ZA"])
    parallel = normalize_msisdns(raw, ["ZA"], max_workers=8)
    assert parallel == sequential
    assert len(parallel) == 100


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("082-123-4567", "0821234567"),
        ("0821234567", "0821234567"),
        ("tel:+27 (0)82", "27082"),
        ("", ""),
        (None, ""),
    ],
)
def test_digits_only(raw, expected):
    assert digits_only(raw) == expected


def test_to_msisdn_returns_none_for_invalid_input():
    assert to_msisdn("12", ["ZA"]) is None
    assert to_msisdn("", ["ZA"]) is None
