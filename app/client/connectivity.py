# app/client/connectivity.py
import threading
from typing import Callable, List

from app.client.errors import StorefrontClientError
from app.client.queue import ActionQueue, ReplayReport
from app.utils.settings import CONNECTIVITY_POLL_SECONDS
from app.utils.logging import get_logger

logger = get_logger(__name__)

ResyncListener = Callable[[ReplayReport], None]


class ConnectivityMonitor:
    """
    Tracks online/offline. Going online triggers a resync: replay the
    queue, refresh the catalog, tell subscribers what happened.
    """

    def __init__(self, queue: ActionQueue, api=None, catalog=None, online: bool = False):
        self.queue = queue
        self.api = api
        self.catalog = catalog
        self._online = online
        self._lock = threading.Lock()
        self._listeners: List[ResyncListener] = []
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_online(self) -> bool:
        with self._lock:
            return self._online

    def subscribe(self, listener: ResyncListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def set_online(self, online: bool) -> ReplayReport | None:
        with self._lock:
            was_online = self._online
            self._online = online

        if online and not was_online:
            logger.info("Back online, replaying pending actions")
            return self.resync()
        if was_online and not online:
            logger.info("Offline, actions will be queued")
        return None

    def resync(self) -> ReplayReport:
        report = self.queue.replay()
        if self.catalog is not None:
            self.catalog.refresh()

        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(report)
            except Exception:
                logger.exception("Resync listener failed")
        return report

    def probe(self) -> bool:
        online = self.api.ping() if self.api is not None else False
        self.set_online(online)
        return online

    def start(self, interval: float = CONNECTIVITY_POLL_SECONDS) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, args=(interval,), name="connectivity", daemon=True)
        self._thread.start()

    def _run(self, interval: float) -> None:
        while not self._stop.is_set():
            try:
                self.probe()
            except StorefrontClientError as e:
                logger.error(f"Connectivity check failed: {e}")
            self._stop.wait(interval)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
