import re
from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

VERSION_RE = re.compile(r"^(\d+)(?:\.([0-9]+))?$")
DIGIT_COUNT = 5

Digits = Tuple[int, int, int, int, int]


class BumpTier(str, Enum):
    SKIP = "skip"
    MAJOR = "major"  # integer bump only
    REFACTOR = "refactor"  # 1st decimal digit
    FEAT = "feat"  # 2nd decimal digit, keeps trailing digits, no carry
    MINOR = "minor"  # 3rd decimal digit
    FIX = "fix"  # 4th decimal digit
    TINY = "tiny"  # 5th decimal digit


# Index of the decimal digit each carrying tier advances, and the precision it
# floors to before advancing.
TIER_DIGIT = {
    BumpTier.REFACTOR: 0,
    BumpTier.MINOR: 2,
    BumpTier.FIX: 3,
    BumpTier.TINY: 4,
}


def clamp_digit(n: int) -> int:
    if n < 0:
        return 0
    if n > 9:
        return 9
    return n


class DecimalVersion(BaseModel):
    """
    Integer major plus five decimal digits.
    Only the first `precision` digits are rendered, but all five are kept so a
    finer bump later resumes from where a coarser one left off.
    """

    model_config = ConfigDict(frozen=True)

    major: int = Field(0, ge=0)
    digits: Digits = (0, 0, 0, 0, 0)
    precision: int = Field(1, ge=1, le=DIGIT_COUNT)

    @field_validator("digits", mode="before")
    @classmethod
    def _clamp_digits(cls, value):
        return tuple(clamp_digit(int(d)) for d in value)

    def __str__(self) -> str:
        return format_version(self)


ZERO = DecimalVersion()


def parse_version(text: str) -> DecimalVersion:
    """
    Parses "<uint>" or "<uint>.<digits>".
    Anything else is 0.0; callers rely on this default instead of an error.
    """
    match = VERSION_RE.match(text.strip()) if isinstance(text, str) else None
    if not match:
        return ZERO

    frac = match.group(2) or ""
    raw_digits = [int(ch) for ch in frac]
    precision = min(max(len(raw_digits), 1), DIGIT_COUNT)

    padded = raw_digits[:DIGIT_COUNT]
    padded += [0] * (DIGIT_COUNT - len(padded))

    return DecimalVersion(
        major=int(match.group(1)), digits=tuple(padded), precision=precision
    )


def format_version(v: DecimalVersion) -> str:
    frac = "".join(str(d) for d in v.digits[: v.precision])
    return f"{v.major}.{frac}"


def with_precision_floor(v: DecimalVersion, precision: int) -> DecimalVersion:
    """Zeroes every digit at or beyond `precision` and renders that many."""
    digits = list(v.digits)
    for i in range(precision, DIGIT_COUNT):
        digits[i] = 0
    return DecimalVersion(major=v.major, digits=tuple(digits), precision=precision)


def increment_at(v: DecimalVersion, index: int) -> DecimalVersion:
    """Adds one at `index`, carrying left; overflow of digit 0 bumps major."""
    digits = list(v.digits)
    digits[index] += 1

    for i in range(index, -1, -1):
        if digits[i] <= 9:
            return DecimalVersion(
                major=v.major, digits=tuple(digits), precision=v.precision
            )
        digits[i] = 0
        if i == 0:
            return DecimalVersion(
                major=v.major + 1, digits=(0, 0, 0, 0, 0), precision=v.precision
            )
        digits[i - 1] += 1

    return DecimalVersion(major=v.major, digits=tuple(digits), precision=v.precision)


def _bump_feat(v: DecimalVersion) -> DecimalVersion:
    # No carry: saturates at 9.
    if v.digits[1] >= 9:
        return v
    digits = list(v.digits)
    digits[1] += 1
    return DecimalVersion(
        major=v.major, digits=tuple(digits), precision=max(v.precision, 2)
    )


def set_to_major_floor(major: int) -> DecimalVersion:
    return DecimalVersion(major=max(int(major), 0))


def bump_version(v: DecimalVersion, tier: BumpTier) -> DecimalVersion:
    tier = BumpTier(tier)
    if tier == BumpTier.SKIP:
        return v
    if tier == BumpTier.MAJOR:
        return set_to_major_floor(v.major + 1)
    if tier == BumpTier.FEAT:
        return _bump_feat(v)

    index = TIER_DIGIT[tier]
    return increment_at(with_precision_floor(v, index + 1), index)
