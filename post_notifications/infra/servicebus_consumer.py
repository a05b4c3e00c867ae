# post_notifications/infra/servicebus_consumer.py
import asyncio
import json
import logging
from typing import Any, Dict, Iterable, Tuple

from azure.servicebus import TransportType
from azure.servicebus.aio import ServiceBusClient
from pydantic import ValidationError

from post_notifications import config
from post_notifications.models.interaction_event import InteractionMessage
from post_notifications.services.dispatch import NotificationDispatcher

logger = logging.getLogger(__name__)

RECONNECT_BACKOFF = 5  # seconds


class UndecodableMessage(ValueError):
    pass


def decode_interaction(body: Iterable[bytes]) -> Tuple[str, Dict[str, Any]]:
    """
    Message body -> (interaction type, event).
    Accepts {"type": "like", "data": {...}} or the event fields next to "type".
    """
    try:
        payload = json.loads(b"".join(body).decode("utf-8"))
        message = InteractionMessage.model_validate(payload)
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        raise UndecodableMessage(str(e)) from e

    if message.data is not None:
        return message.type, message.data
    return message.type, {k: v for k, v in payload.items() if k != "type"}


async def handle_messages(receiver, dispatcher: NotificationDispatcher, messages: Iterable[Any]):
    """Dispatches and completes each message; dead-letters undecodable ones."""
    for msg in messages:
        try:
            interaction_type, event = decode_interaction(msg.body)
        except UndecodableMessage as e:
            logger.error("Dead-lettering undecodable message %s: %s", msg.message_id, e)
            await receiver.dead_letter_message(
                msg, reason="undecodable", error_description=str(e)[:1024],
            )
            continue

        await dispatcher.dispatch(interaction_type, event)
        await receiver.complete_message(msg)


async def consume_interactions(dispatcher: NotificationDispatcher):
    """
    Async Azure Service Bus consumer:
      - AMQP over WebSocket (443) so it works on App Service.
      - Reads like/comment events and hands them to the dispatcher.
      - Completes every dispatched message (dispatch never raises),
        dead-letters bodies it cannot decode.
      - Reconnects with a fixed back-off when the connection drops.
    """
    if not config.SB_CONN_STR:
        logger.warning("AZURE_SERVICE_BUS_CONNECTION_STRING missing, the queue will not be consumed")
        return

    if not config.SB_QUEUE:
        logger.warning("AZURE_SERVICE_BUS_QUEUE_NAME missing, the queue will not be consumed")
        return

    while True:
        try:
            logger.info("Connecting to Service Bus (queue: %s) over WebSockets 443", config.SB_QUEUE)
            async with ServiceBusClient.from_connection_string(
                config.SB_CONN_STR,
                transport_type=TransportType.AmqpOverWebsocket,
            ) as sb_client:
                receiver = sb_client.get_queue_receiver(
                    queue_name=config.SB_QUEUE,
                    max_wait_time=20,
                )
                async with receiver:
                    logger.info("Listening on queue %s", config.SB_QUEUE)
                    while True:
                        messages = await receiver.receive_messages(
                            max_message_count=10,
                            max_wait_time=10,
                        )
                        if not messages:
                            await asyncio.sleep(0.5)
                            continue

                        await handle_messages(receiver, dispatcher, messages)

        except asyncio.CancelledError:
            logger.info("Service Bus consumer stopped")
            raise
        except Exception as e:
            logger.warning("Service Bus connection error, retrying in %ss: %s", RECONNECT_BACKOFF, e)
            await asyncio.sleep(RECONNECT_BACKOFF)
