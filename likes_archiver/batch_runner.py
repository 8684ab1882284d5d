"""
Chunked processing of large worklists.

Both runners split the worklist into contiguous chunks, report progress after
every chunk and return results in input order.
"""

import asyncio
import gc
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

from likes_archiver.models import BatchProgress

T = TypeVar("T")
R = TypeVar("R")

ProgressCallback = Callable[[BatchProgress], None]


def print_progress(progress: BatchProgress):
    """Default progress observer."""
    print(f"Progress: {progress.completed}/{progress.total} ({progress.percent}%)")


def chunked(items: Sequence[T], batch_size: int) -> List[Sequence[T]]:
    """
    Split items into contiguous chunks.

    Args:
        items: Worklist
        batch_size: Maximum chunk length

    Returns:
        List of chunks; the last one may be shorter
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [items[i:i + batch_size] for i in range(0, len(items), batch_size)]


def process_batch(
    items: Sequence[T],
    processor: Callable[[Sequence[T]], List[R]],
    batch_size: int = 1000,
    on_progress: Optional[ProgressCallback] = print_progress
) -> List[R]:
    """
    Run a chunk processor over items, one chunk at a time.

    Args:
        items: Worklist
        processor: Called once per chunk, returns that chunk's results
        batch_size: Chunk length
        on_progress: Observer called after every chunk

    Returns:
        Concatenated results
    """
    results: List[R] = []
    total = len(items)
    done = 0
    for chunk in chunked(items, batch_size):
        results.extend(processor(chunk))
        done += len(chunk)
        gc.collect()
        if on_progress:
            on_progress(BatchProgress(completed=done, total=total))
    return results


async def process_batch_async(
    items: Sequence[T],
    processor: Callable[[T], Awaitable[R]],
    batch_size: int = 100,
    concurrent: bool = True,
    on_progress: Optional[ProgressCallback] = print_progress,
    after_chunk: Optional[Callable[[], None]] = None,
    delay: float = 0.0,
    should_stop: Optional[Callable[[], bool]] = None
) -> List[R]:
    """
    Run an async per-item processor over items chunk by chunk.

    Args:
        items: Worklist
        processor: Coroutine function called once per item
        batch_size: Chunk length
        concurrent: Fan each chunk out with gather; otherwise await items in order
        on_progress: Observer called after every chunk
        after_chunk: Hook run after every chunk (e.g. flushing a ledger)
        delay: Seconds to wait between chunks
        should_stop: Checked before each chunk (and each item when sequential);
            True ends the run early, in-flight items still finish

    Returns:
        Results for the processed items, in input order
    """
    results: List[R] = []
    total = len(items)
    done = 0
    chunks = chunked(items, batch_size)

    for index, chunk in enumerate(chunks):
        if should_stop and should_stop():
            break

        print(f"Batch {index + 1}/{len(chunks)}: items {done + 1}-{done + len(chunk)} of {total}")
        stopped = False
        if concurrent:
            results.extend(await asyncio.gather(*(processor(item) for item in chunk)))
            done += len(chunk)
        else:
            for item in chunk:
                if should_stop and should_stop():
                    stopped = True
                    break
                results.append(await processor(item))
                done += 1

        if after_chunk:
            after_chunk()
        if on_progress:
            on_progress(BatchProgress(completed=done, total=total))
        if stopped:
            break

        if index < len(chunks) - 1:
            await asyncio.sleep(delay)

    return results
