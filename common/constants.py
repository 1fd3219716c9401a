# GitHub
GITHUB_API_URL = "https://api.github.com"
GITHUB_RAW_URL = "https://raw.githubusercontent.com"
ACCEPT_JSON = "application/vnd.github+json"
ACCEPT_DIFF = "application/vnd.github.v3.diff"
PAGE_SIZE = 100
MAX_PAGES_SINCE = 50
MAX_PAGES_ALL = 500

# Version marker
MARKER_FILE = "README.md"
MARKER_PATTERN = r"\$\{V(\d+)\}"

DIFF_UNAVAILABLE = (
    "Diff is empty or too large to fetch from GitHub API. It may be truncated "
    "or omitted due to size limits. Please see the commit on GitHub for details."
)

# Ledger files
LEDGER_DIR = "./commitsTracker"
LEDGER_TAG = "GithubTracker"
LEDGER_EXT = ".json"
SUPERSEDED_DIR = "superseded"
STAMP_FORMAT = "%Y%m%d-%H%M%S"

# Tracking
SINCE_DAYS = 7
SINCE_BUFFER_HOURS = 2
COMMITS_PER_FILE = 250

# Classifier
CLASSIFIER_URL = "https://api.openai.com/v1/chat/completions"
CLASSIFIER_MODEL = "gpt-4o-mini"
CLASSIFIER_MAX_TOKENS = 256
CLASSIFIER_TIMEOUT = 30.0
DIFF_MAX_CHARS = 12_000
DIFF_HEAD_SHARE = 0.6
PROMPT_TOKEN_LIMIT = 40_000
PROMPT_TOKEN_RESERVE = 1024

# Redis Queues
QUEUE_TRACKER = "TRACKER_QUEUE"
JOB_TIMEOUT = 60 * 60

HTTP_TIMEOUT = 20.0
