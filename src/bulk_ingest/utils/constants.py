# SENTINEL object marks end-of-stream on worker queues; compare with "is"
SENTINEL = object()

DEFAULT_CONCURRENCY = 10
DEFAULT_STORE_ATTEMPTS = 1
DEFAULT_RETRY_BACKOFF = 0.2
DEFAULT_LIST_PAGE_SIZE = 100
DEFAULT_BODY_QUEUE_SIZE = 8

METADATA_DIR = "metadata"
CONFIG_ENTRY = "config.json"
KEEP_ENTRY = "keep.json"
ENVELOPE_SUFFIX = ".json"
