from __future__ import annotations

"""
File: robot_game/mq_consumer.py
Purpose: RabbitMQ transport for the game bridge.
Key responsibilities:
- Consume host commands from the command queue and hand them to the bridge.
- Attach the game exchange to the outbound MQ channel.
"""

import logging

import aio_pika

from robot_game.bridge import GameBridge
from robot_game.mq import connect, setup_topology
from robot_game.settings import rabbit_url, settings
from robot_game.transports import MQChannel

logger = logging.getLogger("robot-game.mq")


class MQConsumer:
    """Feeds RabbitMQ commands into the bridge and publishes its events."""
    def __init__(self, bridge: GameBridge, channel: MQChannel) -> None:
        self.bridge = bridge
        self.mq_channel = channel
        self.connection: aio_pika.RobustConnection | None = None

    async def start(self) -> None:
        """Connect, declare topology and start consuming commands."""
        self.connection = await connect(rabbit_url())
        channel = await self.connection.channel()
        await channel.set_qos(prefetch_count=10)

        exchange, queue_commands = await setup_topology(channel, settings.exchange_name, settings.command_queue)
        self.mq_channel.attach(exchange)
        await queue_commands.consume(self._on_message)
        logger.info("game mq consumer started exchange=%s queue=%s", settings.exchange_name, settings.command_queue)

    async def stop(self) -> None:
        await self.mq_channel.stop()
        if self.connection is not None:
            await self.connection.close()
            self.connection = None

    async def _on_message(self, message: aio_pika.IncomingMessage) -> None:
        """Handle one command; the bridge reports its own protocol errors."""
        try:
            self.bridge.handle_message(message.body)
        except Exception as exc:  # noqa: BLE001
            logger.exception("mq message handling error routing_key=%s: %s", message.routing_key, exc)
        finally:
            await message.ack()
