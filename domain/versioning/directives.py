import re
from typing import Literal, Optional

from pydantic import BaseModel

from domain.versioning.decimal_version import BumpTier

SKIP_TAGS = ("skip", "skipver", "noversion")

# Priority order matters: the first family with any tag present wins,
# wherever the tag sits in the message.
TIER_TAGS: list[tuple[BumpTier, tuple[str, ...]]] = [
    (
        BumpTier.MAJOR,
        ("major", "breaking", "break", "breaking-change", "api-break", "schema-break", "remove"),
    ),
    (
        BumpTier.REFACTOR,
        ("refactor", "perf", "optimise", "optimize", "cleanup", "internal", "techdebt"),
    ),
    (BumpTier.FEAT, ("feat", "feature", "add", "new", "enhance", "extend")),
    (BumpTier.MINOR, ("minor", "min", "tweak", "improve")),
    (
        BumpTier.FIX,
        ("fix", "bug", "bugfix", "patch", "hotfix", "security", "regression", "stability"),
    ),
    (
        BumpTier.TINY,
        (
            "tiny",
            "docs", "doc", "readme", "comment", "comments", "typo",
            "test", "tests", "qa",
            "build", "ci", "deps", "dep", "bump", "upgrade", "tooling",
            "style", "format", "lint", "prettier", "eslint",
            "chore", "meta", "housekeeping",
        ),
    ),
]

# "!setver", "!setver 2.1", "!setver=2.1", "!setver:2.1"
# The version has to sit on the same line as the directive.
SETVER_RE = re.compile(r"(^|\s)!setver(?:[ \t]*[=:]?[ \t]*([^\s=:]\S*))?", re.IGNORECASE)


class SetverDirective(BaseModel):
    kind: Literal["marker", "explicit"]
    raw_version: Optional[str] = None


def _has_tag(lower: str, tag: str) -> bool:
    return f"!{tag}" in lower


def tier_from_message(message: str) -> Optional[BumpTier]:
    """
    Returns the tier tagged in the commit message, or None when untagged.
    """
    lower = message.lower()

    if any(_has_tag(lower, tag) for tag in SKIP_TAGS):
        return BumpTier.SKIP

    for tier, tags in TIER_TAGS:
        if any(_has_tag(lower, tag) for tag in tags):
            return tier

    return None


def parse_setver_directive(message: str) -> Optional[SetverDirective]:
    """
    A bare "!setver", or one followed by another "!tag", syncs to the marker major.
    Anything else after it is taken as an explicit version.
    """
    match = SETVER_RE.search(message)
    if not match:
        return None

    token = (match.group(2) or "").strip()
    if not token or token.startswith("!"):
        return SetverDirective(kind="marker")

    return SetverDirective(kind="explicit", raw_version=token)
