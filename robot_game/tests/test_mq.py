import asyncio
import json

import aio_pika

from robot_game.bridge import BridgeContext, GameBridge
from robot_game.mq_consumer import MQConsumer
from robot_game.transports import MQChannel


class FakeExchange:
    """Records what would be published to the game exchange."""

    def __init__(self):
        self.published = []

    async def publish(self, message, routing_key):
        self.published.append((routing_key, message))


class FakeMessage:
    def __init__(self, body, routing_key="game.command.test"):
        self.body = body
        self.routing_key = routing_key
        self.acked = False

    async def ack(self):
        self.acked = True


class ExplodingBridge:
    def handle_message(self, raw):
        raise RuntimeError("boom")


def test_mq_channel_publishes_events_by_type():
    exchange = FakeExchange()
    channel = MQChannel()
    assert not channel.available
    channel.exchange = exchange
    bridge = GameBridge(BridgeContext(channels=[channel]))

    bridge.handle_message({"type": "GET_STATUS", "data": {}})
    asyncio.run(channel.drain())

    assert len(exchange.published) == 1
    routing_key, message = exchange.published[0]
    assert routing_key == "game.event.STATUS"
    assert message.delivery_mode == aio_pika.DeliveryMode.PERSISTENT
    body = json.loads(message.body)
    assert body["type"] == "STATUS"
    assert body["source"] == "robot-game"
    assert body["data"]["mapLoaded"] is False


def test_consumer_reports_bad_commands_through_the_bridge():
    exchange = FakeExchange()
    channel = MQChannel()
    channel.exchange = exchange
    consumer = MQConsumer(GameBridge(BridgeContext(channels=[channel])), channel)
    message = FakeMessage(b"{not json")

    asyncio.run(consumer._on_message(message))
    asyncio.run(channel.drain())

    assert message.acked
    routing_key, published = exchange.published[0]
    assert routing_key == "game.event.ERROR"
    assert json.loads(published.body)["data"]["type"] == "INVALID_MESSAGE"


def test_consumer_acks_even_when_handling_fails():
    consumer = MQConsumer(ExplodingBridge(), MQChannel())
    message = FakeMessage(b'{"type": "GET_STATUS"}')

    asyncio.run(consumer._on_message(message))

    assert message.acked
