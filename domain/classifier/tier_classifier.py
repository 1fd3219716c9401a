import json
import logging
import math
from typing import Literal, Optional

from pydantic import BaseModel, ValidationError, field_validator

from common.constants import (
    DIFF_HEAD_SHARE,
    DIFF_MAX_CHARS,
    PROMPT_TOKEN_LIMIT,
    PROMPT_TOKEN_RESERVE,
)
from core.ports import ChatClient
from domain.versioning.decimal_version import BumpTier
from domain.versioning.directives import tier_from_message

TRUNCATION_MARKER = "... [diff truncated for length] ..."

SYSTEM_PROMPT = (
    "You classify a single git commit into a release-impact tier.\n"
    'Return ONLY valid JSON: {"tier":"major|refactor|feat|minor|fix|tiny","confidence":0..1}.\n'
    "Tier meanings:\n"
    "- major: breaking public API or behaviour, incompatible schema/config/protocol change, "
    "removed or renamed public exports.\n"
    "- refactor: internal restructure or performance work with no intended behaviour change.\n"
    "- feat: new user-facing capability or new public API that adds behaviour.\n"
    "- minor: smaller user-facing improvement that is not a full feature and not a bugfix.\n"
    "- fix: bug or security fix, correctness or regression fix.\n"
    "- tiny: docs/tests/ci/style/deps/tooling/housekeeping or unclear minimal impact.\n"
    "Choose the highest applicable tier. If unsure, choose tiny."
)


class TierVerdict(BaseModel):
    tier: Literal["major", "refactor", "feat", "minor", "fix", "tiny"]
    confidence: float = 0.0

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0.0
        return max(0.0, min(1.0, float(value)))


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text.encode("utf-8")) / 2)


def truncate_diff(diff: str, max_chars: int = DIFF_MAX_CHARS) -> str:
    """
    Keeps the head and tail of an oversized diff and drops the middle.
    """
    if len(diff) <= max_chars:
        return diff

    head_chars = math.floor(max_chars * DIFF_HEAD_SHARE)
    tail_chars = max_chars - head_chars

    head = diff[:head_chars].rstrip()
    tail = diff[len(diff) - tail_chars :].lstrip()

    return "\n".join([head, "", TRUNCATION_MARKER, "", tail])


def parse_verdict(raw: str) -> Optional[TierVerdict]:
    try:
        return TierVerdict.model_validate(json.loads(raw))
    except (TypeError, ValueError, ValidationError):
        return None


def build_user_prompt(message: str, diff: str) -> str:
    return f"Commit message:\n{message}\n\nDiff:\n{truncate_diff(diff)}"


class TierClassifier:
    """
    Decides the bump tier of one commit.
    Message tags win; untagged commits go to the LLM; any LLM trouble means tiny.
    """

    def __init__(self, chat_client: Optional[ChatClient] = None):
        self.chat_client = chat_client

    def decide(self, message: str, diff: str) -> BumpTier:
        tagged = tier_from_message(message)
        if tagged is not None:
            return tagged
        return self.classify(message, diff)

    def classify(self, message: str, diff: str) -> BumpTier:
        if self.chat_client is None:
            return BumpTier.TINY

        user_prompt = build_user_prompt(message, diff)
        estimated = (
            estimate_tokens(SYSTEM_PROMPT)
            + estimate_tokens(user_prompt)
            + PROMPT_TOKEN_RESERVE
        )
        if estimated > PROMPT_TOKEN_LIMIT:
            logging.warning(
                f"Prompt too large for classifier (~{estimated} tokens), defaulting to tiny."
            )
            return BumpTier.TINY

        try:
            raw = self.chat_client.complete(SYSTEM_PROMPT, user_prompt)
        except Exception as e:
            logging.warning(f"LLM tier classify failed, defaulting to tiny. {e}")
            return BumpTier.TINY

        verdict = parse_verdict(raw)
        if verdict is None:
            logging.warning(f"Unparsable classifier reply, defaulting to tiny: {raw!r}")
            return BumpTier.TINY

        logging.debug(f"LLM tier {verdict.tier} (confidence {verdict.confidence:.2f})")
        return BumpTier(verdict.tier)
