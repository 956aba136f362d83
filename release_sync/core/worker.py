"""
Runs a reconciliation on a background thread so a presentation layer stays responsive.
"""

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Callable

from .reconciler import InstallationReconciler, SyncReport

log = logging.getLogger(__name__)


class SyncWorker:
    """
    A single background worker that performs one reconciliation per ``start()``.

    Network and disk work runs strictly in sequence from the worker's event
    loop. Progress callbacks are always called on the worker thread and are
    expected to hand the update over to their own thread without blocking. There is no
    cancellation; a run ends in a terminal outcome or an unexpected exception,
    which is set on the returned future.
    """

    def __init__(self, reconciler_factory: Callable[[], InstallationReconciler]):
        self._reconciler_factory = reconciler_factory
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "Future[SyncReport]":
        """Starts a run and returns a future resolving to its report."""
        if self.running:
            raise RuntimeError("A sync is already running.")
        future: Future[SyncReport] = Future()
        self._thread = threading.Thread(
            target=self._run, args=(future,), name="release-sync-worker", daemon=True
        )
        self._thread.start()
        return future

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self, future: "Future[SyncReport]") -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            report = asyncio.run(self._reconcile())
        except Exception as e:
            log.debug("Sync worker stopped with an unexpected error.", exc_info=True)
            future.set_exception(e)
        else:
            future.set_result(report)

    async def _reconcile(self) -> SyncReport:
        reconciler = self._reconciler_factory()
        try:
            return await reconciler.reconcile()
        finally:
            await reconciler.close()
