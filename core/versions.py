APP_VERSION = "0.1.0"
CLASSIFIER_PROMPT_VERSION = "2025-01"
USER_AGENT = f"GithubTracker/{APP_VERSION}"


# =============================================================================
# Version Catalog
# =============================================================================
# Name                      | Meaning                           | Changes when…
# ------------------------- | --------------------------------- | ------------------------------------------
# APP_VERSION               | overall package version           | you ship a release
# CLASSIFIER_PROMPT_VERSION | LLM tier prompt                   | system instructions or tier meanings change
# =============================================================================
# Bumping heuristics:
#   - Reword the tier prompt or change model → bump CLASSIFIER_PROMPT_VERSION
#   Replayed histories are only comparable under the same prompt version.
# =============================================================================
