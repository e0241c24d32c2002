"""
Bounded fan-out / fan-in executor shared by host discovery and port scanning.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from .utils import chunked

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')

# (percentage, identifier of the item that just finished)
ProgressCallback = Callable[[int, str], Any]


class ProbeScheduler(Generic[T, R]):
    """
    Runs a probe over every item, at most `concurrency` at a time.

    Items are cut into consecutive batches of `concurrency`. A batch runs
    concurrently and must fully finish before the next one starts, so the
    number of in-flight probes never exceeds the limit.

    Probes are expected to turn their own failures into result records.
    Anything a probe raises propagates to the caller.
    """

    def __init__(self, concurrency: int, on_progress: Optional[ProgressCallback] = None):
        if concurrency < 1:
            raise ValueError(f"Concurrency must be at least 1 (got {concurrency})")
        self.concurrency = concurrency
        self.on_progress = on_progress

    async def run(
        self,
        items: Sequence[T],
        probe: Callable[[T], Awaitable[R]],
        key: Callable[[T], str] = str,
    ) -> List[R]:
        total = len(items)
        completed = 0
        results: List[R] = []

        async def tracked(item: T) -> R:
            nonlocal completed
            result = await probe(item)
            completed += 1
            if self.on_progress:
                self.on_progress(round(100 * completed / total), key(item))
            return result

        for batch_no, batch in enumerate(chunked(items, self.concurrency), start=1):
            logger.debug("Batch %d: %d probes", batch_no, len(batch))
            results.extend(await asyncio.gather(*(tracked(item) for item in batch)))

        return results
