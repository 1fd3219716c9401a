import logging
import time
from typing import Optional

import httpx

from common.constants import (
    CLASSIFIER_MAX_TOKENS,
    CLASSIFIER_MODEL,
    CLASSIFIER_TIMEOUT,
    CLASSIFIER_URL,
)
from common.errors import ClassifierError

RATE_LIMIT_WAIT = 3.0


class LLMClient:
    """
    Minimal OpenAI-compatible chat-completions client.
    The caller owns the httpx.Client lifecycle when one is passed in.
    """

    def __init__(
        self,
        api_key: str,
        url: str = CLASSIFIER_URL,
        model: str = CLASSIFIER_MODEL,
        timeout: float = CLASSIFIER_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ):
        if not api_key:
            raise ValueError("LLMClient needs an API key")
        self.url = url
        self.model = model
        self.http = http_client or httpx.Client(timeout=timeout)
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def complete(
        self, system: str, user: str, max_tokens: int = CLASSIFIER_MAX_TOKENS
    ) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": max_tokens,
            "temperature": 0,
        }

        response = None
        for attempt in range(2):
            try:
                response = self.http.post(self.url, json=payload, headers=self.headers)
                response.raise_for_status()
                break
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 429 and attempt == 0:
                    logging.warning(
                        f"Too many requests to classifier, waiting {RATE_LIMIT_WAIT}s..."
                    )
                    time.sleep(RATE_LIMIT_WAIT)
                    continue
                raise ClassifierError(
                    f"Classifier HTTP {e.response.status_code}: {e.response.text[:500]}"
                ) from e
            except httpx.HTTPError as e:
                raise ClassifierError(f"Classifier request failed: {e}") from e

        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ClassifierError(f"Unexpected classifier response: {e}") from e

        if not isinstance(content, str):
            raise ClassifierError("Classifier returned no text content")
        return content

    def close(self) -> None:
        self.http.close()
