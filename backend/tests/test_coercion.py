import math

from posfin.coercion import (
    first_field,
    first_positive,
    first_present,
    get_path,
    is_flag_set,
    normalize_id,
    safe_ratio,
    to_number,
)


class TestToNumber:
    def test_numeric_strings_parse(self):
        assert to_number(" 12.5 ") == 12.5

    def test_garbage_uses_fallback(self):
        assert to_number("abc") == 0.0
        assert to_number(None, 7.0) == 7.0
        assert to_number({"amount": 5}) == 0.0

    def test_booleans_are_not_numbers(self):
        assert to_number(True) == 0.0

    def test_non_finite_uses_fallback(self):
        assert to_number(float("inf")) == 0.0
        assert to_number("nan", 3.0) == 3.0


class TestFallbackChains:
    def test_first_positive_skips_zero_and_negative(self):
        assert first_positive(0, -5, "", "40", 10) == 40.0

    def test_first_positive_none_qualifies(self):
        assert first_positive(None, 0, "x") == 0.0

    def test_first_present_keeps_explicit_zero(self):
        assert first_present(0, 25) == 0.0

    def test_first_present_fallback(self):
        assert first_present(None, "", fallback=9.0) == 9.0
        assert math.isclose(first_present("bad", "2.5"), 2.5)


def test_normalize_id():
    assert normalize_id("  abc ") == "abc"
    assert normalize_id(42) == "42"
    assert normalize_id("   ") is None
    assert normalize_id(None) is None


def test_get_path_walks_nested_mappings():
    record = {"seller": {"id": "s-1"}, "flat": "x"}
    assert get_path(record, "seller.id") == "s-1"
    assert get_path(record, "flat.id") is None
    assert get_path(record, "missing.id") is None


def test_first_field_skips_empty_values():
    assert first_field({"a": "", "b": None, "c": 0}, "a", "b", "c") == 0


def test_is_flag_set():
    assert is_flag_set(True)
    assert is_flag_set("TRUE")
    assert not is_flag_set(1)
    assert not is_flag_set("yes")


def test_safe_ratio_guards_zero_denominator():
    assert safe_ratio(5, 0) == 0.0
    assert safe_ratio(1, 4) == 0.25
