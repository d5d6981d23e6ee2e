"""Owned handle for a lazily loaded model.

The first acquire() starts loading in a worker thread; every concurrent
caller awaits the same future. A failed load resets the handle so the
next acquire() tries again.
"""
import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]
Loader = Callable[[ProgressCallback], Any]


class ModelLoadError(RuntimeError):
    pass


class ModelHandle:
    """Loads a model at most once and hands the same instance to every caller."""

    def __init__(self, loader: Loader, name: str = "model"):
        self._loader = loader
        self.name = name
        self._future: Optional[asyncio.Future] = None
        self._task: Optional[asyncio.Task] = None
        self._listeners: list[ProgressCallback] = []

    @property
    def is_loaded(self) -> bool:
        return self._future is not None and self._future.done() and self._future.exception() is None

    @property
    def is_loading(self) -> bool:
        return self._future is not None and not self._future.done()

    def _report(self, progress: float, status: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(progress, status)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}")

    def acquire(self, on_progress: Optional[ProgressCallback] = None) -> asyncio.Future:
        """Awaitable resolving to the loaded model.

        Listeners are kept only while the load is running; once loaded,
        on_progress is called right away with 100.

        Must be called from a running event loop.
        """
        if self._future is None:
            loop = asyncio.get_running_loop()
            self._future = loop.create_future()
            if on_progress is not None:
                self._listeners.append(on_progress)
            self._task = loop.create_task(self._load(self._future))
        elif not self._future.done():
            if on_progress is not None:
                self._listeners.append(on_progress)
        elif on_progress is not None:
            on_progress(100, "Modelo carregado!")
        return self._future

    async def _load(self, future: asyncio.Future) -> None:
        loop = asyncio.get_running_loop()

        def threadsafe_report(progress: float, status: str) -> None:
            loop.call_soon_threadsafe(self._report, min(progress, 95), status)

        self._report(0, f"Carregando {self.name}...")
        try:
            model = await asyncio.to_thread(self._loader, threadsafe_report)
        except Exception as e:
            logger.error(f"Failed to load {self.name}: {e}")
            self._future = None
            self._listeners.clear()
            future.set_exception(ModelLoadError(f"Erro ao inicializar {self.name}: {e}"))
            # Waiters get the exception; an unawaited failure must not warn.
            future.exception()
            return
        logger.info(f"{self.name} loaded")
        self._report(100, "Modelo carregado!")
        self._listeners.clear()
        future.set_result(model)

    def release(self) -> None:
        """Forget the loaded model; the next acquire() loads it again."""
        if self.is_loading:
            raise ModelLoadError(f"{self.name} is still loading")
        self._future = None
        self._task = None
