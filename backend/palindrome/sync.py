"""Client-side match observation: push events plus a polling backstop.

Neither path trusts the content of a change event. Both end in the same
``refresh()``: fetch the whole match again and hand it to the caller. Event
loss, duplication and reordering therefore cost at most an extra read.
"""

import logging
import threading
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_POLL_INTERVAL_SEC = 2.5


class SyncBridge(Generic[T]):
    """Keep ``on_update`` fed with fresh snapshots from ``fetch``.

    ``fetch`` returns the current snapshot or None (unknown match; nothing
    is delivered). ``subscribe``, when given, receives a zero-argument
    trigger and returns an unsubscribe callable.
    """

    def __init__(
        self,
        fetch: Callable[[], Optional[T]],
        on_update: Callable[[T], None],
        subscribe: Optional[Callable[[Callable[..., None]], Callable[[], None]]] = None,
        interval: float = DEFAULT_POLL_INTERVAL_SEC,
    ):
        self.fetch = fetch
        self.on_update = on_update
        self.subscribe = subscribe
        self.interval = interval
        self._refresh_lock = threading.Lock()
        self._stopped = threading.Event()
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._poller: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._poller is not None and not self._stopped.is_set()

    def start(self) -> Optional[T]:
        if self.running:
            return None
        self._stopped.clear()
        if self.subscribe is not None:
            self._unsubscribe = self.subscribe(self.trigger)
        try:
            snapshot = self.refresh()
        except Exception:
            # A bridge whose first fetch failed is not left half running
            self.stop()
            raise
        self._poller = threading.Thread(target=self._poll, name='sync-bridge-poll', daemon=True)
        self._poller.start()
        return snapshot

    def stop(self) -> None:
        self._stopped.set()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._poller is not None and self._poller is not threading.current_thread():
            self._poller.join(timeout=self.interval + 1)
        self._poller = None

    def trigger(self, *_event) -> None:
        """Push path. The event payload is never read."""
        if self._stopped.is_set():
            return
        try:
            self.refresh()
        except Exception:
            logger.exception("[sync-push] refetch failed")

    def refresh(self) -> Optional[T]:
        with self._refresh_lock:
            snapshot = self.fetch()
            if snapshot is not None:
                self.on_update(snapshot)
            return snapshot

    def _poll(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.refresh()
            except Exception:
                # Next tick retries
                logger.exception("[sync-poll] refetch failed")
