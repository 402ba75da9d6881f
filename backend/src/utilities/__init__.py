from .constants import (
    DISCOVERY_INTERVAL,
    POLL_INTERVAL,
    PULL_BATCH_SIZE,
    MIRROR_SUFFIX,
    TOPIC_ATTRIBUTES,
    DEFAULT_QUERY_LIMIT,
    MAX_QUERY_LIMIT,
)
from .config import Settings, settings, configure_logging
from .utility_functions import (
    now_ts,
    short_name,
    mirror_subscription,
    topic_from_subscription,
    derive_type_from_topic,
    decode_wire_data,
    encode_wire_data,
    to_json,
    make_envelope,
    normalize_attributes,
    topic_hint,
    make_mirrored_message,
    make_error,
    parse_limit,
    searchable_text,
    filter_messages,
)
