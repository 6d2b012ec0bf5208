"""Bounded queue helpers shared by the pipeline stages."""

import asyncio

# Marks the end of a stream; each consumer takes exactly one
END = object()


def make_queue(maxsize: int) -> asyncio.Queue:
    """Bounded queue; a full queue suspends the producer."""
    return asyncio.Queue(maxsize=maxsize)


async def close_queue(queue: asyncio.Queue, consumers: int) -> None:
    """Signal end of stream to every consumer of `queue`."""
    for _ in range(consumers):
        await queue.put(END)
