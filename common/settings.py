import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from common.constants import (
    CLASSIFIER_MODEL,
    CLASSIFIER_TIMEOUT,
    CLASSIFIER_URL,
    HTTP_TIMEOUT,
    LEDGER_DIR,
)

load_dotenv()


class Settings(BaseModel):
    github_token: Optional[str] = None
    # Classifier is disabled when no key is set; untagged commits become tiny.
    classifier_api_key: Optional[str] = None
    classifier_url: str = CLASSIFIER_URL
    classifier_model: str = CLASSIFIER_MODEL
    classifier_timeout: float = Field(CLASSIFIER_TIMEOUT, gt=0)
    http_timeout: float = Field(HTTP_TIMEOUT, gt=0)
    ledger_dir: str = LEDGER_DIR
    redis_url: Optional[str] = None


def _env(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment (.env is loaded on import).
    Keyword overrides win over the environment; None values are ignored.
    """
    values = {
        "github_token": _env("GITHUB_TOKEN"),
        "classifier_api_key": _env("OPENAI_KEY"),
        "classifier_url": _env("CLASSIFIER_URL"),
        "classifier_model": _env("CLASSIFIER_MODEL"),
        "classifier_timeout": _env("CLASSIFIER_TIMEOUT"),
        "http_timeout": _env("HTTP_TIMEOUT"),
        "ledger_dir": _env("LEDGER_DIR"),
        "redis_url": _env("REDIS_URL"),
    }
    values.update(overrides)
    return Settings(**{k: v for k, v in values.items() if v is not None})
