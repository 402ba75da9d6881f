from .emulator import EmulatorClient, PublishError
from .mirror import (
    mirror_received,
    pull_once,
    poll_subscription,
    refresh_subscriptions,
    discovery_loop,
    publish_message,
)
