"""
All-or-nothing fan-out for sibling provider fetches.
"""

import asyncio
from typing import Any, Awaitable


async def run_all_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """
    Run awaitables concurrently and return their results in argument order.

    On the first failure the unfinished siblings are cancelled (aborting
    their network calls) and that failure is raised. If the caller itself
    is cancelled, every sibling is cancelled too.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        pending = set(tasks)
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
            failed = [t for t in tasks if t in done and not t.cancelled() and t.exception() is not None]
            if failed:
                raise failed[0].exception()
        return [t.result() for t in tasks]
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        # Let cancelled siblings unwind before returning control
        await asyncio.gather(*tasks, return_exceptions=True)
