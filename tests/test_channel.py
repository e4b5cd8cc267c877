import asyncio

from vet_messaging.realtime.channel import MessageChannel
from vet_messaging.realtime.in_memory import InMemoryRealtimeFeed


def test_channel_delivers_in_order_until_closed():
    async def scenario():
        channel = MessageChannel()
        for index in range(3):
            channel.push({"id": f"m{index}"})
        channel.close()
        received = []
        async for row in channel:
            received.append(row["id"])
            channel.task_done()
        await channel.join()
        return received

    assert asyncio.run(scenario()) == ["m0", "m1", "m2"]


def test_closed_channel_rejects_rows():
    async def scenario():
        channel = MessageChannel()
        channel.close()
        return channel.push({"id": "late"}), channel.closed

    assert asyncio.run(scenario()) == (False, True)


def test_bounded_channel_counts_drops():
    async def scenario():
        channel = MessageChannel(maxsize=2)
        accepted = [channel.push({"id": f"m{index}"}) for index in range(4)]
        return accepted, channel.dropped

    assert asyncio.run(scenario()) == ([True, True, False, False], 2)


def test_feed_routes_rows_by_table():
    async def scenario():
        feed = InMemoryRealtimeFeed()
        received = []
        subscription = await feed.subscribe("messages", received.append)
        feed.publish("messages", {"id": "m1"})
        feed.publish("appointments", {"id": "a1"})
        await feed.unsubscribe(subscription)
        feed.publish("messages", {"id": "m2"})
        return received

    assert asyncio.run(scenario()) == [{"id": "m1"}]


def test_feed_failure_notifies_and_drops_subscribers():
    async def scenario():
        feed = InMemoryRealtimeFeed()
        errors = []
        await feed.subscribe("messages", lambda row: None, errors.append)
        feed.fail("messages", RuntimeError("closed"))
        return [str(error) for error in errors], feed.subscriber_count("messages")

    assert asyncio.run(scenario()) == (["closed"], 0)
