"""
Lock-free message dequeue

Any number of uncoordinated consumers can drain a queue with this procedure.
Each message is delivered to at most one consumer: a consumer owns a message
only if its delete of the message key succeeds. No ordering is guaranteed.

The loop is not bounded in time. Callers that need a deadline should wrap
the call in asyncio.wait_for or a similar timeout.
"""

import logging
import random
from typing import Optional, Tuple

from .backend import StorageBackend


logger = logging.getLogger(__name__)

_system_random = random.SystemRandom()


async def dequeue(
    backend: StorageBackend,
    prefix: str,
    rng: Optional[random.Random] = None
) -> Optional[Tuple[str, bytes]]:
    """
    Remove and return one message stored under a queue prefix.

    Args:
        backend: Storage backend holding the queue
        prefix: Listing prefix of the queue (e.g. 'queues/jobs/')
        rng: Random source for selecting among messages (SystemRandom if None)

    Returns:
        The message key and bytes, or None once the queue is observed empty
    """
    chooser = rng or _system_random
    lost = 0

    while True:
        keys = await backend.list_keys(prefix)
        if not keys:
            return None

        # Random choice spreads concurrent consumers across messages
        key = chooser.choice(sorted(keys))

        data = await backend.read(key)
        if data is not None and await backend.delete(key):
            if lost:
                logger.debug(f"Dequeued {key} after {lost} lost race(s)")
            return key, data

        # Another consumer removed the message first
        lost += 1
        logger.debug(f"Lost race for {key}, relisting {prefix}")
