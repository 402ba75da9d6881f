"""Mirror loops: topic discovery, per-subscription polling and manual publish.

Discovery and pollers are asyncio tasks running until shutdown. Each cycle
absorbs its own failures so a broken emulator only means empty cycles.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from models import MessageBuffer, PollerRegistry
from utilities import (
    DISCOVERY_INTERVAL,
    POLL_INTERVAL,
    PULL_BATCH_SIZE,
    decode_wire_data,
    derive_type_from_topic,
    encode_wire_data,
    make_envelope,
    make_mirrored_message,
    mirror_subscription,
    now_ts,
    to_json,
    topic_hint,
)

from .emulator import EmulatorClient

logger = logging.getLogger(__name__)


def mirror_received(received: Dict[str, Any], subscription: str, received_at: str) -> dict:
    """Build a mirrored message from one entry of a pull response."""
    msg = received.get("message")
    if not isinstance(msg, dict):
        msg = {}
    attributes = msg.get("attributes") or {}
    if not isinstance(attributes, dict):
        attributes = {}
    data, raw = decode_wire_data(msg.get("data"))
    return make_mirrored_message(
        message_id=msg.get("messageId") or "",
        subscription=subscription,
        publish_time=msg.get("publishTime") or None,
        attributes=attributes,
        data=data,
        raw=raw,
        received_at=received_at,
        topic=topic_hint(attributes, subscription),
    )


async def pull_once(emulator: EmulatorClient, buffer: MessageBuffer, subscription: str) -> int:
    """One pull/buffer/ack cycle. Returns the number of messages buffered."""
    received = await emulator.pull(subscription, PULL_BATCH_SIZE)
    if not received:
        return 0
    received_at = now_ts()
    await buffer.extend([mirror_received(rm, subscription, received_at) for rm in received])
    ack_ids = [rm["ackId"] for rm in received if rm.get("ackId")]
    if ack_ids:
        # redelivery after a failed ack is accepted
        await emulator.acknowledge(subscription, ack_ids)
    return len(received)


async def poll_subscription(emulator: EmulatorClient, buffer: MessageBuffer, subscription: str,
                            interval: float = POLL_INTERVAL):
    logger.info("Poller started for %s", subscription)
    while True:
        try:
            await pull_once(emulator, buffer, subscription)
        except Exception:
            logger.exception("Error polling %s", subscription)
        await asyncio.sleep(interval)


async def refresh_subscriptions(emulator: EmulatorClient, buffer: MessageBuffer,
                                registry: PollerRegistry,
                                poll_interval: float = POLL_INTERVAL) -> List[str]:
    """One discovery cycle: mirror subscription and poller for every remote topic."""
    topics = await emulator.list_topics()
    for topic in topics:
        subscription = await emulator.create_subscription(topic)
        registry.ensure(
            topic,
            subscription,
            lambda s=subscription: poll_subscription(emulator, buffer, s, poll_interval),
        )
    return topics


async def discovery_loop(emulator: EmulatorClient, buffer: MessageBuffer, registry: PollerRegistry,
                         interval: float = DISCOVERY_INTERVAL, poll_interval: float = POLL_INTERVAL):
    logger.info("Topic discovery started")
    while True:
        try:
            await refresh_subscriptions(emulator, buffer, registry, poll_interval)
        except Exception:
            logger.exception("Error in topic discovery")
        await asyncio.sleep(interval)


async def publish_message(emulator: EmulatorClient, buffer: MessageBuffer, topic: str,
                          message_type: Optional[str], attributes: Dict[str, str],
                          data: Any) -> Dict[str, Any]:
    """
    Publish data to topic inside the standard envelope and mirror it locally.

    Raises PublishError (nothing is mirrored) when the emulator refuses the
    message. Returns the emulator's publish response.
    """
    await emulator.create_subscription(topic)

    message_type = message_type or derive_type_from_topic(topic)
    envelope = make_envelope(message_type, data)
    payload = to_json(envelope)
    response = await emulator.publish(topic, [{"data": encode_wire_data(payload), "attributes": attributes}])

    ids = response.get("messageIds")
    message_id = str(ids[0]) if isinstance(ids, list) and ids else ""
    now = now_ts()
    subscription = mirror_subscription(topic)
    await buffer.push(make_mirrored_message(
        message_id=message_id,
        subscription=subscription,
        publish_time=now,
        attributes=attributes,
        data=envelope,
        raw=payload,
        received_at=now,
        topic=topic,
    ))
    logger.info("Mirrored %s id=%s buffer size=%d", subscription, message_id, len(buffer))
    return response
