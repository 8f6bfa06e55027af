# Fallback when os.cpu_count() cannot report the available parallelism
DEFAULT_WORKER_COUNT = 4

FRAGMENT_PREFIX = "fragment_"
STAGING_PREFIX = ".tablemap-staging-"
TMP_SUFFIX = ".tmp"

CSV_LINE_TERMINATOR = "\n"
# Characters besides the delimiter that force a field into quotes
CSV_SPECIAL_CHARS = ('"', "\r", "\n")

# Scratch-store pragmas: fast, not crash safe
SQLITE_PRAGMAS = (
    "PRAGMA temp_store = MEMORY",
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = OFF",
)
