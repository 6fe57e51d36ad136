"""
Runs one asyncio event loop on a daemon thread.

Flask handles each request on its own worker thread; every controller
coroutine is submitted here so the studio state is only ever touched from
this single loop.
"""
import asyncio
import logging
import threading

logger = logging.getLogger(__name__)


class LoopRunner:
    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="studio-event-loop", daemon=True)
        self._thread.start()
        logger.info("Studio event loop started")

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def run(self, coro):
        """Blocks the calling thread until the coroutine finishes on the loop; returns its result."""
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return future.result()

    def stop(self):
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join()
        self.loop.close()
