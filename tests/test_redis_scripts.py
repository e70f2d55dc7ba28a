"""
Redis gateway against fakeredis, so the Lua scripts actually execute.
"""

import asyncio

import fakeredis
import pytest

from relay_app.queue.exceptions import InvalidToken
from relay_app.queue.models import QueueHandle
from relay_app.queue.strategies import RedisQueueGateway
from relay_app.services.relay_service import MessageRelay


@pytest.fixture
def redis_handle():
    return QueueHandle(
        connection_string="redis://fake",
        queue_name="scripted-queue",
        visibility_timeout=1,
    )


def run_with_redis(handle, scenario):
    """Run scenario(gateway, client) on a fresh fake Redis server inside one event loop"""
    async def main():
        client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
        try:
            return await scenario(RedisQueueGateway(client, handle), client)
        finally:
            await client.aclose()

    return asyncio.run(main())


class TestRedisScripts:
    """Enqueue / claim / delete scripts on a real command engine"""

    def test_round_trip(self, redis_handle):
        async def scenario(gateway, client):
            relay = MessageRelay(gateway)
            await relay.push("a")
            await relay.push("b")
            return tuple([
                (await relay.pop()).data,
                (await relay.pop()).data,
                (await relay.pop()).message,
            ])

        assert run_with_redis(redis_handle, scenario) == ("a", "b", "Queue is empty")

    def test_pop_missing_queue(self, redis_handle):
        async def scenario(gateway, client):
            return (await MessageRelay(gateway).pop()).message

        assert run_with_redis(redis_handle, scenario) == "Queue does not exist"

    def test_claim_hides_message(self, redis_handle):
        async def scenario(gateway, client):
            await gateway.ensure_exists()
            await gateway.enqueue(b'{"content":"a"}')
            claim = await gateway.dequeue_one()
            return claim, await gateway.dequeue_one(), await gateway.get_queue_length()

        claim, second, length = run_with_redis(redis_handle, scenario)
        assert claim.text == '{"content":"a"}'
        assert claim.dequeue_count == 1
        assert second is None
        assert length == 1

    def test_racing_pops_never_share_a_message(self, redis_handle):
        async def scenario(gateway, client):
            relay = MessageRelay(gateway)
            await relay.push("only one")
            return await asyncio.gather(relay.pop(), relay.pop())

        results = run_with_redis(redis_handle, scenario)
        assert sorted(r.message for r in results) == ["Popped from queue", "Queue is empty"]
        assert [r.data for r in results if r.data] == ["only one"]

    def test_double_delete_fails(self, redis_handle):
        async def scenario(gateway, client):
            await gateway.ensure_exists()
            await gateway.enqueue(b'{"content":"a"}')
            claim = await gateway.dequeue_one()
            await gateway.delete_by_token(claim.message_id, claim.delete_token)
            with pytest.raises(InvalidToken):
                await gateway.delete_by_token(claim.message_id, claim.delete_token)
            return await gateway.get_queue_length()

        assert run_with_redis(redis_handle, scenario) == 0

    def test_expired_claim_cannot_delete(self, redis_handle):
        async def scenario(gateway, client):
            await gateway.ensure_exists()
            await gateway.enqueue(b'{"content":"a"}')
            stale = await gateway.dequeue_one()
            await asyncio.sleep(redis_handle.visibility_timeout + 0.1)
            with pytest.raises(InvalidToken):
                await gateway.delete_by_token(stale.message_id, stale.delete_token)
            return stale, await gateway.dequeue_one()

        stale, fresh = run_with_redis(redis_handle, scenario)
        assert fresh.message_id == stale.message_id
        assert fresh.dequeue_count == 2

    def test_push_after_flush_provisions_again(self, redis_handle):
        async def scenario(gateway, client):
            relay = MessageRelay(gateway)
            await relay.push("a")
            await client.flushall()
            pushed = await relay.push("b")
            return pushed, await gateway.exists(), await relay.pop()

        pushed, exists, popped = run_with_redis(redis_handle, scenario)
        assert pushed.data == "b"
        assert exists is True
        assert popped.data == "b"
