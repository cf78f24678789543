import anyio
import pytest

from app.services.realtime_bridge import NotificationSubscription, SubscriptionState

pytestmark = pytest.mark.asyncio


def record(id_=1, user_id="u1", **fields):
    return {"id": id_, "user_id": user_id, "type": "task_update", "title": f"n{id_}", **fields}


async def test_subscription_binds_insert_filter(realtime_client):
    received = []
    subscription = NotificationSubscription(realtime_client, "u1", received.append)

    await subscription.start()

    channel = realtime_client.channels[0]
    assert channel.name == "notifications-table-u1"
    assert channel.subscribed
    assert channel.bindings[0]["event"] == "INSERT"
    assert channel.bindings[0]["table"] == "notifications"
    assert channel.bindings[0]["filter"] == "user_id=eq.u1"
    assert subscription.state == SubscriptionState.SUBSCRIBED


async def test_subscription_ignores_events_after_stop(realtime_client):
    received = []
    subscription = NotificationSubscription(realtime_client, "u1", received.append)
    await subscription.start()
    channel = realtime_client.channels[0]

    channel.emit(record(1))
    await subscription.stop()
    channel.emit(record(2))

    assert [n.id for n in received] == ["1"]
    assert realtime_client.removed == [channel]


async def test_subscription_drops_rows_without_id(realtime_client):
    received = []
    subscription = NotificationSubscription(realtime_client, "u1", received.append)
    await subscription.start()

    realtime_client.channels[0].emit({"user_id": "u1", "title": "no id"})

    assert received == []


async def test_one_channel_shared_by_listeners(bridge, realtime_client):
    first, second = [], []
    release_first = await bridge.subscribe("u1", first.append)
    release_second = await bridge.subscribe("u1", second.append)

    assert len(realtime_client.channels) == 1
    assert bridge.listener_count("u1") == 2

    realtime_client.channels[0].emit(record(5))
    assert [n.id for n in first] == ["5"]
    assert [n.id for n in second] == ["5"]

    await release_first()
    assert bridge.is_subscribed("u1")
    assert realtime_client.removed == []

    await release_second()
    assert not bridge.is_subscribed("u1")
    assert realtime_client.removed == realtime_client.channels


async def test_release_is_idempotent(bridge, realtime_client):
    release = await bridge.subscribe("u1", lambda payload: None)
    other = await bridge.subscribe("u1", lambda payload: None)

    await release()
    await release()

    assert bridge.listener_count("u1") == 1
    await other()
    assert realtime_client.removed == realtime_client.channels


async def test_users_get_separate_channels(bridge, realtime_client):
    mine, theirs = [], []
    await bridge.subscribe("u1", mine.append)
    await bridge.subscribe("u2", theirs.append)

    realtime_client.channels[1].emit(record(9, user_id="u2"))

    assert mine == []
    assert [n.id for n in theirs] == ["9"]


async def test_failing_listener_does_not_starve_others(bridge, realtime_client):
    received = []

    def broken(payload):
        raise RuntimeError("listener bug")

    await bridge.subscribe("u1", broken)
    await bridge.subscribe("u1", received.append)

    realtime_client.channels[0].emit(record(3))

    assert [n.id for n in received] == ["3"]


async def test_listen_streams_inserts(bridge, realtime_client):
    async with bridge.listen("u1") as stream:
        realtime_client.channels[0].emit(record(1, created_at="2026-03-01T12:00:00+00:00"))
        realtime_client.channels[0].emit(record(2))
        first = await stream.receive()
        second = await stream.receive()

    assert (first.id, second.id) == ("1", "2")
    assert first.created_at == "2026-03-01T12:00:00+00:00"
    assert not bridge.is_subscribed("u1")


async def test_listen_releases_on_exception(bridge, realtime_client):
    with pytest.raises(RuntimeError):
        async with bridge.listen("u1"):
            raise RuntimeError("consumer crashed")

    assert not bridge.is_subscribed("u1")
    assert realtime_client.removed == realtime_client.channels


async def test_listen_releases_on_cancellation(bridge, realtime_client):
    entered = anyio.Event()

    async def consume():
        async with bridge.listen("u1") as stream:
            entered.set()
            async for _ in stream:
                pass

    async with anyio.create_task_group() as tg:
        tg.start_soon(consume)
        await entered.wait()
        tg.cancel_scope.cancel()

    assert not bridge.is_subscribed("u1")
    assert realtime_client.removed == realtime_client.channels


async def test_full_buffer_drops_newest(bridge, realtime_client):
    async with bridge.listen("u1") as stream:
        for i in range(bridge.buffer_size + 3):
            realtime_client.channels[0].emit(record(i))

        received = []
        while True:
            try:
                received.append(stream.receive_nowait())
            except anyio.WouldBlock:
                break

    assert [n.id for n in received] == [str(i) for i in range(bridge.buffer_size)]


async def test_close_removes_every_channel(bridge, realtime_client):
    await bridge.subscribe("u1", lambda payload: None)
    await bridge.subscribe("u2", lambda payload: None)

    await bridge.close()

    assert not bridge.is_subscribed("u1")
    assert not bridge.is_subscribed("u2")
    assert len(realtime_client.removed) == 2


async def test_slow_join_does_not_hold_up_other_users(bridge, realtime_client):
    joining, release = anyio.Event(), anyio.Event()
    realtime_client.gates["notifications-table-slow"] = (joining, release)

    async with anyio.create_task_group() as tg:
        tg.start_soon(bridge.subscribe, "slow", lambda payload: None)
        await joining.wait()

        with anyio.fail_after(1):
            unsubscribe = await bridge.subscribe("u1", lambda payload: None)
            await unsubscribe()

        assert [channel.name for channel in realtime_client.removed] == ["notifications-table-u1"]
        release.set()

    assert bridge.is_subscribed("slow")


async def test_cancelled_join_removes_channel(bridge, realtime_client):
    joining, release = anyio.Event(), anyio.Event()
    realtime_client.gates["notifications-table-u1"] = (joining, release)
    received = []

    async with anyio.create_task_group() as tg:
        tg.start_soon(bridge.subscribe, "u1", received.append)
        await joining.wait()
        tg.cancel_scope.cancel()

    realtime_client.channels[0].emit(record(1))

    assert received == []
    assert not bridge.is_subscribed("u1")
    assert bridge.listener_count("u1") == 0
    assert realtime_client.removed == realtime_client.channels


async def test_close_during_join_wins(bridge, realtime_client):
    joining, release = anyio.Event(), anyio.Event()
    realtime_client.gates["notifications-table-u1"] = (joining, release)
    received = []

    async with anyio.create_task_group() as tg:
        tg.start_soon(bridge.subscribe, "u1", received.append)
        await joining.wait()
        await bridge.close()
        release.set()

    realtime_client.channels[0].emit(record(1))

    assert received == []
    assert not bridge.is_subscribed("u1")
    assert realtime_client.removed == realtime_client.channels

async def test_failed_join_is_undone_and_retried(bridge, realtime_client):
    realtime_client.fail_join.add("notifications-table-u1")

    with pytest.raises(RuntimeError):
        await bridge.subscribe("u1", lambda payload: None)

    assert not bridge.is_subscribed("u1")
    assert bridge.listener_count("u1") == 0
    assert realtime_client.removed == realtime_client.channels

    realtime_client.fail_join.clear()
    await bridge.subscribe("u1", lambda payload: None)
    assert bridge.is_subscribed("u1")
    assert realtime_client.channels[-1].subscribed
