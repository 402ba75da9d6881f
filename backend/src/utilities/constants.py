# ------------ Config ------------
DISCOVERY_INTERVAL = 5.0      # seconds between topic list refreshes
POLL_INTERVAL = 0.5           # seconds between pulls on one mirror subscription
PULL_BATCH_SIZE = 50          # max messages per pull request
MIRROR_SUFFIX = ".ui"         # mirror subscription name = "<topic>.ui"
TOPIC_ATTRIBUTES = ("topic", "_topic")  # reserved attributes carrying the topic hint
DEFAULT_QUERY_LIMIT = 200
MAX_QUERY_LIMIT = 5000
# --------------------------------
