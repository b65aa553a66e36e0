import asyncio
import time


class MonotonicClock:
    """Wall-clock source for the timeline. Tests swap in a fake with the same two methods."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


monotonic_clock = MonotonicClock()
