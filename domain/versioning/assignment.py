import logging
from typing import Optional

from pydantic import BaseModel

from common.schemas import CommitRecord
from core.ports import Classifier
from domain.versioning.decimal_version import (
    BumpTier,
    DecimalVersion,
    bump_version,
    format_version,
    parse_version,
    set_to_major_floor,
)
from domain.versioning.directives import parse_setver_directive


class Assignment(BaseModel):
    version: DecimalVersion  # running version after this commit
    stored: str  # what goes into the ledger
    tier: Optional[BumpTier] = None  # None when a !setver directive decided
    reason: str


def assign_version(
    current: DecimalVersion,
    message: str,
    diff: str,
    marker_major: int,
    classifier: Classifier,
) -> Assignment:
    """
    Version of one commit given the running version before it.

    An explicit "!setver <v>" wins and is stored exactly as typed.
    A bare "!setver" syncs to the marker major when one was found.
    Otherwise the classifier picks the tier to bump by.
    """
    setver = parse_setver_directive(message)

    if setver is not None and setver.kind == "explicit":
        return Assignment(
            version=parse_version(setver.raw_version),
            stored=setver.raw_version,
            reason=f"setver explicit {setver.raw_version}",
        )

    if setver is not None:
        if marker_major > 0:
            synced = set_to_major_floor(marker_major)
            return Assignment(
                version=synced,
                stored=format_version(synced),
                reason=f"setver marker major {marker_major}",
            )
        logging.info(
            f"Found !setver but no version marker, leaving {format_version(current)} unchanged"
        )
        return Assignment(
            version=current,
            stored=format_version(current),
            reason="setver without marker",
        )

    tier = BumpTier(classifier.decide(message, diff))
    bumped = bump_version(current, tier)
    return Assignment(
        version=bumped,
        stored=format_version(bumped),
        tier=tier,
        reason=f"tier {tier.value}",
    )


def chronological(commits_newest_first: list[CommitRecord]) -> list[CommitRecord]:
    """
    The host lists newest first; versions must be applied oldest first.
    """
    return list(reversed(commits_newest_first))
