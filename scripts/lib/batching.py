"""
Chunked fan-out helpers for per-address requests.

Large address lists are split into bounded chunks. Each chunk gets its own
thread pool with one worker per key, so every call of the chunk is in
flight at once; the chunk is awaited as a whole before the next starts.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, TypeVar


T = TypeVar("T")
R = TypeVar("R")

DEFAULT_CHUNK_BY = 20


def chunk(items: Sequence[T], size: int) -> List[List[T]]:
    """
    Split items into consecutive groups of at most `size`.

    A non-positive size, or one that covers the whole list, disables
    chunking and yields a single group.

    Examples:
        chunk(["a", "b", "c"], 2) -> [["a", "b"], ["c"]]
        chunk(["a", "b", "c"], 0) -> [["a", "b", "c"]]
        chunk([], 5) -> []
    """
    if not items:
        return []

    if size <= 0 or size >= len(items):
        return [list(items)]

    return [list(items[i : i + size]) for i in range(0, len(items), size)]


async def gather_chunk(keys: Sequence[T], fetch: Callable[[T], R]) -> List[R]:
    """
    Run one blocking call per key, all at once, and wait for all of them.

    The first failure propagates. Sibling calls already dispatched are
    left to finish in their threads; their results are discarded.
    """
    if not keys:
        return []

    loop = asyncio.get_running_loop()
    executor = ThreadPoolExecutor(max_workers=len(keys), thread_name_prefix="explorer")
    try:
        return list(
            await asyncio.gather(*(loop.run_in_executor(executor, fetch, key) for key in keys))
        )
    finally:
        # Siblings of a failed call keep running; the loop does not wait on them
        executor.shutdown(wait=False)


async def gather_in_chunks(
    keys: Sequence[T],
    fetch: Callable[[T], R],
    chunk_by: int = DEFAULT_CHUNK_BY,
) -> List[R]:
    """
    Fetch every key, at most `chunk_by` at a time.

    Args:
        keys: Ordered keys (addresses, box ids, ...)
        fetch: Blocking per-key call; should return a result tagged with its key
        chunk_by: Chunk size, see chunk()

    Returns:
        Results in chunk order, then key order within each chunk
    """
    results: List[R] = []
    for group in chunk(keys, chunk_by):
        results.extend(await gather_chunk(group, fetch))
    return results
