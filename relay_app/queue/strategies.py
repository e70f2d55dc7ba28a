"""
Queue gateway strategies using Strategy Pattern.
Allows switching between different queue backends (Redis, In-Memory).
"""

import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from redis.exceptions import RedisError

from .exceptions import InvalidToken, TransportError
from .models import ClaimedMessage, DeleteToken, QueueHandle

logger = logging.getLogger(__name__)


class QueueGateway(ABC):
    """
    Abstract base class for queue gateways.

    A gateway owns the queue identity (connection + name) and exposes the
    primitive operations the relay is built on. The claim made by
    dequeue_one() is the only mutual exclusion in the system, so every
    backend must make it atomic on the queue service side.

    All methods are async because every operation is network I/O.
    """

    def __init__(self, handle: QueueHandle):
        self.handle = handle

    @property
    def queue_name(self) -> str:
        return self.handle.queue_name

    @abstractmethod
    async def ensure_exists(self) -> None:
        """
        Create the queue if it is absent. No-op when it already exists.
        """
        pass

    @abstractmethod
    async def exists(self) -> bool:
        """
        Report whether the queue has been provisioned.
        """
        pass

    @abstractmethod
    async def enqueue(self, envelope_bytes: bytes) -> None:
        """
        Append a message at the tail of the queue.

        Args:
            envelope_bytes: Serialized envelope (UTF-8 JSON)

        Raises:
            TransportError: the queue service is unreachable or the queue is missing
        """
        pass

    @abstractmethod
    async def dequeue_one(self) -> Optional[ClaimedMessage]:
        """
        Claim at most one visible message.

        The message stays invisible to other callers for the handle's
        visibility timeout. Each claim issues a fresh delete token.

        Returns:
            ClaimedMessage, or None if nothing is visible
        """
        pass

    @abstractmethod
    async def delete_by_token(self, message_id: str, delete_token: DeleteToken) -> None:
        """
        Permanently remove a claimed message.

        Raises:
            InvalidToken: claim expired, superseded or message already deleted
            TransportError: the queue service is unreachable
        """
        pass

    @abstractmethod
    async def get_queue_length(self) -> int:
        """
        Approximate number of stored messages (visible and claimed).
        Returns 0 when the queue does not exist.
        """
        pass


# Timestamps are taken from the Redis server clock so every app instance
# agrees on when a claim expires.
_NOW_MS = """
local t = redis.call('TIME')
local now = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)
"""

# KEYS: meta, schedule, messages, seq   ARGV: text
_ENQUEUE_SCRIPT = _NOW_MS + """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return false
end
local id = string.format('%020d', redis.call('INCR', KEYS[4]))
redis.call('HSET', KEYS[3], id, ARGV[1])
redis.call('ZADD', KEYS[2], now, id)
return id
"""

# KEYS: meta, schedule, messages, claims, counts   ARGV: visibility_ms, token
_DEQUEUE_SCRIPT = _NOW_MS + """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return false
end
local ids = redis.call('ZRANGEBYSCORE', KEYS[2], '-inf', now, 'LIMIT', 0, 1)
if #ids == 0 then
    return false
end
local id = ids[1]
redis.call('ZADD', KEYS[2], now + tonumber(ARGV[1]), id)
redis.call('HSET', KEYS[4], id, ARGV[2])
local count = redis.call('HINCRBY', KEYS[5], id, 1)
return {id, redis.call('HGET', KEYS[3], id), count}
"""

# KEYS: schedule, messages, claims, counts   ARGV: id, token
_DELETE_SCRIPT = _NOW_MS + """
if redis.call('HGET', KEYS[3], ARGV[1]) ~= ARGV[2] then
    return 0
end
local visible_at = redis.call('ZSCORE', KEYS[1], ARGV[1])
if not visible_at or tonumber(visible_at) <= now then
    return 0
end
redis.call('ZREM', KEYS[1], ARGV[1])
redis.call('HDEL', KEYS[2], ARGV[1])
redis.call('HDEL', KEYS[3], ARGV[1])
redis.call('HDEL', KEYS[4], ARGV[1])
return 1
"""


class RedisQueueGateway(QueueGateway):
    """
    Redis implementation of the queue gateway.

    Layout (all keys share the {queue_name} hash tag):
    - meta:     hash, present once the queue is provisioned
    - schedule: sorted set, message id -> epoch ms when it becomes visible
    - messages: hash, message id -> envelope text
    - claims:   hash, message id -> secret of the current delete token
    - counts:   hash, message id -> times claimed
    - seq:      counter used to mint message ids

    Enqueue, claim and delete run as Lua scripts, so each one is atomic on
    the Redis server. Two workers can never claim the same message inside
    one visibility window.
    """

    def __init__(self, redis_client, handle: QueueHandle):
        """
        Initialize Redis queue gateway.

        Args:
            redis_client: redis.asyncio.Redis instance (decode_responses=True)
            handle: Queue identity and visibility timeout
        """
        super().__init__(handle)
        self.redis = redis_client
        self._provisioned = False

        prefix = f"relay:{{{handle.queue_name}}}"
        self.meta_key = f"{prefix}:meta"
        self.schedule_key = f"{prefix}:schedule"
        self.messages_key = f"{prefix}:messages"
        self.claims_key = f"{prefix}:claims"
        self.counts_key = f"{prefix}:counts"
        self.seq_key = f"{prefix}:seq"

        self._enqueue = redis_client.register_script(_ENQUEUE_SCRIPT)
        self._dequeue = redis_client.register_script(_DEQUEUE_SCRIPT)
        self._delete = redis_client.register_script(_DELETE_SCRIPT)

    @contextmanager
    def _transport(self, operation: str):
        try:
            yield
        except RedisError as e:
            logger.error("Redis %s failed for queue %s: %s", operation, self.queue_name, e)
            raise TransportError(f"Queue service error during {operation}: {e}") from e

    async def ensure_exists(self) -> None:
        if self._provisioned:
            return

        with self._transport("ensure_exists"):
            created = await self.redis.hsetnx(self.meta_key, "created_at", int(time.time()))

        if created:
            logger.info("Created queue: %s", self.queue_name)
        self._provisioned = True

    async def exists(self) -> bool:
        with self._transport("exists"):
            return await self.redis.exists(self.meta_key) == 1

    async def _enqueue_text(self, text: str) -> Optional[str]:
        with self._transport("enqueue"):
            return await self._enqueue(
                keys=[self.meta_key, self.schedule_key, self.messages_key, self.seq_key],
                args=[text],
            )

    async def enqueue(self, envelope_bytes: bytes) -> None:
        text = envelope_bytes.decode("utf-8")
        message_id = await self._enqueue_text(text)

        if message_id is None and self._provisioned:
            # Keys vanished since provisioning (flush, restart without persistence, eviction)
            logger.warning("Queue %s disappeared, provisioning it again", self.queue_name)
            self._provisioned = False
            await self.ensure_exists()
            message_id = await self._enqueue_text(text)

        if message_id is None:
            raise TransportError(f"Queue {self.queue_name} does not exist")
        logger.debug("Enqueued message %s on %s", message_id, self.queue_name)

    async def dequeue_one(self) -> Optional[ClaimedMessage]:
        token = DeleteToken.issue()

        with self._transport("dequeue"):
            result = await self._dequeue(
                keys=[
                    self.meta_key,
                    self.schedule_key,
                    self.messages_key,
                    self.claims_key,
                    self.counts_key,
                ],
                args=[self.handle.visibility_timeout * 1000, token.secret],
            )

        if not result:
            return None

        message_id, text, dequeue_count = result
        return ClaimedMessage(
            text=text or "",
            message_id=message_id,
            delete_token=token,
            dequeue_count=int(dequeue_count),
        )

    async def delete_by_token(self, message_id: str, delete_token: DeleteToken) -> None:
        with self._transport("delete"):
            deleted = await self._delete(
                keys=[self.schedule_key, self.messages_key, self.claims_key, self.counts_key],
                args=[message_id, delete_token.secret],
            )

        if not deleted:
            raise InvalidToken(f"Delete token for message {message_id} is stale or already used")

    async def get_queue_length(self) -> int:
        with self._transport("get_queue_length"):
            return await self.redis.hlen(self.messages_key)


@dataclass
class _StoredMessage:
    text: str
    visible_at: float
    token: Optional[DeleteToken] = None
    dequeue_count: int = 0


class InMemoryQueueGateway(QueueGateway):
    """
    In-memory queue gateway.

    Pros:
    - Simple (no external dependencies)
    - Same claim / visibility window behaviour as the Redis backend

    Cons:
    - Not persistent (lost on restart)
    - Not distributed (each process has its own queue)

    Used in development/testing environments. The internal lock plays the
    role the queue service plays for Redis.
    """

    def __init__(self, handle: QueueHandle, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            handle: Queue identity and visibility timeout
            clock: Seconds source, injectable so tests can move time forward
        """
        super().__init__(handle)
        self._clock = clock
        self._lock = threading.Lock()
        self._messages: Optional[Dict[str, _StoredMessage]] = None

    async def ensure_exists(self) -> None:
        with self._lock:
            if self._messages is None:
                self._messages = OrderedDict()
                logger.info("Created in-memory queue: %s", self.queue_name)

    async def exists(self) -> bool:
        return self._messages is not None

    async def enqueue(self, envelope_bytes: bytes) -> None:
        with self._lock:
            if self._messages is None:
                raise TransportError(f"Queue {self.queue_name} does not exist")
            message_id = uuid.uuid4().hex
            self._messages[message_id] = _StoredMessage(
                text=envelope_bytes.decode("utf-8"),
                visible_at=self._clock(),
            )

    async def dequeue_one(self) -> Optional[ClaimedMessage]:
        with self._lock:
            if self._messages is None:
                return None

            now = self._clock()
            for message_id, stored in self._messages.items():
                if stored.visible_at <= now:
                    stored.visible_at = now + self.handle.visibility_timeout
                    stored.token = DeleteToken.issue()
                    stored.dequeue_count += 1
                    return ClaimedMessage(
                        text=stored.text,
                        message_id=message_id,
                        delete_token=stored.token,
                        dequeue_count=stored.dequeue_count,
                    )
            return None

    async def delete_by_token(self, message_id: str, delete_token: DeleteToken) -> None:
        with self._lock:
            stored = (self._messages or {}).get(message_id)
            if (
                stored is None
                or stored.token != delete_token
                or stored.visible_at <= self._clock()
            ):
                raise InvalidToken(f"Delete token for message {message_id} is stale or already used")
            del self._messages[message_id]

    async def get_queue_length(self) -> int:
        return len(self._messages or {})
