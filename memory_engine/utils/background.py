"""
Fire-and-forget task submission on a thread pool.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from .logging_config import get_logger

logger = get_logger(__name__)


class BackgroundTaskRunner:
    """Run callables off the request path.

    Nobody waits on the returned futures; a task that raises is logged by a
    done-callback and otherwise forgotten.
    """

    def __init__(self, max_workers: int = 4, thread_name_prefix: str = 'memory-bg'):
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)

    def submit(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Schedule fn(*args, **kwargs) and return immediately."""
        future = self.executor.submit(fn, *args, **kwargs)
        future.add_done_callback(lambda f: self._log_outcome(name, f))
        return future

    @staticmethod
    def _log_outcome(name: str, future: Future) -> None:
        if future.cancelled():
            logger.warning(f'Background task {name} was cancelled')
            return
        error = future.exception()
        if error is not None:
            logger.error(f'Background task {name} failed: {error!r}')
        else:
            logger.debug(f'Background task {name} finished')

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
