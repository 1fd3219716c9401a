import pytest

from domain.versioning.decimal_version import (
    ZERO,
    BumpTier,
    DecimalVersion,
    bump_version,
    format_version,
    parse_version,
    set_to_major_floor,
)


def _bump(text: str, tier: BumpTier) -> str:
    return format_version(bump_version(parse_version(text), tier))


@pytest.mark.parametrize(
    "text, expected",
    [
        ("2", "2.0"),
        ("2.3", "2.3"),
        ("2.30", "2.30"),
        ("1.23456", "1.23456"),
        ("1.2345678", "1.23456"),
        ("  4.07 ", "4.07"),
    ],
)
def test_parse_and_format(text, expected):
    assert format_version(parse_version(text)) == expected


@pytest.mark.parametrize("text", ["", "abc", "v1.2", "1.2.3", "-1.0", "1.", ".5"])
def test_parse_malformed_is_zero(text):
    v = parse_version(text)
    assert v == ZERO
    assert str(v) == "0.0"


def test_parse_keeps_all_five_digits():
    v = parse_version("1.2")
    assert v.digits == (2, 0, 0, 0, 0)
    assert v.precision == 1


def test_digits_are_clamped():
    v = DecimalVersion(major=1, digits=(12, -3, 5, 0, 0), precision=3)
    assert v.digits == (9, 0, 5, 0, 0)


def test_major_resets_everything():
    assert _bump("3.14159", BumpTier.MAJOR) == "4.0"


def test_skip_is_identity():
    v = parse_version("3.142")
    assert bump_version(v, BumpTier.SKIP) == v


@pytest.mark.parametrize(
    "text, tier, expected",
    [
        ("3.9", BumpTier.REFACTOR, "4.0"),
        ("3.4", BumpTier.REFACTOR, "3.5"),
        ("3.456", BumpTier.REFACTOR, "3.5"),
        ("3.5679", BumpTier.FIX, "3.5680"),
        ("3.5699", BumpTier.FIX, "3.5700"),
        ("3.099", BumpTier.MINOR, "3.100"),
        ("3.999", BumpTier.MINOR, "4.000"),
        ("2.3", BumpTier.FIX, "2.3001"),
        ("1.99999", BumpTier.TINY, "2.00000"),
        ("1.12349", BumpTier.TINY, "1.12350"),
        ("0.0", BumpTier.TINY, "0.00001"),
    ],
)
def test_carry(text, tier, expected):
    assert _bump(text, tier) == expected


def test_feat_keeps_trailing_digits():
    assert _bump("2.3001", BumpTier.FEAT) == "2.3101"
    assert _bump("2.3", BumpTier.FEAT) == "2.31"


def test_feat_saturates_at_nine():
    v = parse_version("2.3945")
    assert bump_version(v, BumpTier.FEAT) == v


def test_coarse_bump_then_fine_bump_resumes_hidden_digits():
    v = parse_version("1.00005")
    v = bump_version(v, BumpTier.FEAT)
    assert format_version(v) == "1.01005"
    v = bump_version(v, BumpTier.TINY)
    assert format_version(v) == "1.01006"


def test_set_to_major_floor():
    assert format_version(set_to_major_floor(5)) == "5.0"
    assert set_to_major_floor(-2) == ZERO


def test_chained_bumps_are_deterministic():
    tiers = [BumpTier.FIX, BumpTier.FEAT, BumpTier.TINY, BumpTier.MINOR, BumpTier.REFACTOR]

    def run():
        v = parse_version("0.9")
        out = []
        for tier in tiers:
            v = bump_version(v, tier)
            out.append(format_version(v))
        return out

    assert run() == run()
    assert run() == ["0.9001", "0.9101", "0.91011", "0.911", "1.0"]


def test_order_matters():
    forward = parse_version("1.0")
    for tier in [BumpTier.REFACTOR, BumpTier.FIX]:
        forward = bump_version(forward, tier)

    backward = parse_version("1.0")
    for tier in [BumpTier.FIX, BumpTier.REFACTOR]:
        backward = bump_version(backward, tier)

    assert format_version(forward) == "1.1001"
    assert format_version(backward) == "1.1"
