import asyncio
import logging

from fieldroute.persistence.supabase_store import SupabaseStore


class FakeChannel:
    def __init__(self) -> None:
        self.callback = None

    def on_postgres_changes(self, event, schema=None, table=None, callback=None):
        self.callback = callback
        return self

    async def subscribe(self):
        return self


class FakeClient:
    def __init__(self) -> None:
        self.channels = []

    def channel(self, name):
        channel = FakeChannel()
        self.channels.append(channel)
        return channel

    async def remove_channel(self, channel):
        self.channels.remove(channel)


def test_realtime_listener_errors_are_logged_and_released(caplog) -> None:
    async def scenario():
        client = FakeClient()
        store = SupabaseStore(client)
        seen = []

        async def listener(change):
            seen.append(change)
            raise RuntimeError("board render failed")

        subscription = await store.subscribe_visit_changes(listener)
        channel = client.channels[0]
        channel.callback({"data": {"type": "UPDATE", "record": {"id": "v1"}}})
        channel.callback({"eventType": "INSERT", "new": {"id": "v2"}})
        for _ in range(3):
            await asyncio.sleep(0)
        pending = len(store._pending)
        await subscription.close()
        return client, seen, pending

    with caplog.at_level(logging.ERROR, logger="fieldroute.persistence.supabase_store"):
        client, seen, pending = asyncio.run(scenario())

    assert [(change.event, change.visit_id) for change in seen] == [("UPDATE", "v1"), ("INSERT", "v2")]
    assert pending == 0
    assert client.channels == []
    failures = [record for record in caplog.records if "Visit change listener failed" in record.getMessage()]
    assert len(failures) == 2
