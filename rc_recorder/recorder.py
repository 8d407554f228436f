import threading
from queue import Empty, Full, Queue
from typing import Callable, Optional, Protocol, Self

from loguru import logger

from .bus import PayloadHandler

POLL_INTERVAL = 0.1
DEFAULT_MAX_PENDING = 1000


class Bus(Protocol):
    def subscribe(self, topic: str, handler: PayloadHandler, qos: int = 0) -> None: ...
    def unsubscribe(self, topic: str) -> None: ...


class RecordListener(threading.Thread):
    """
    Consumes payloads delivered on the records topic and hands them to the callback, one at a time.

    `start()` subscribes the topic on the calling thread, so a refused subscription
    raises there, then starts the consumption thread. The bus callback only enqueues
    the payload. `stop()` refuses further payloads; the thread unsubscribes, handles
    what was already queued and exits.

    Example:
    ```python
    writer = RecordWriter("/data/records")
    listener = RecordListener().configure(bus=bus, topic="robocar/records", callback=writer.handle)
    with listener:
        listener.join()
    ```
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._stop_event = threading.Event()
        # serializes enqueue against stop, nothing is queued once stop() returns
        self._lock = threading.Lock()
        self._payloads: Queue[bytes] = Queue(maxsize=DEFAULT_MAX_PENDING)
        self.callback: Optional[Callable[[bytes], object]] = None
        self.handled = 0
        self.dropped = 0

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        self.join()

    def configure(
        self,
        *,
        bus: Bus,
        topic: str,
        callback: Callable[[bytes], object],
        qos: int = 0,
        max_pending: int = DEFAULT_MAX_PENDING,
    ) -> Self:
        self.bus = bus
        self.topic = topic
        self.callback = callback
        self.qos = qos
        self._payloads = Queue(maxsize=max_pending)
        return self

    def start(self):
        if self.callback is None:
            raise RuntimeError("Callback not set. Please call self.configure() before start().")
        self.bus.subscribe(self.topic, self.enqueue, self.qos)
        logger.info(f"Recording messages from {self.topic}")
        super().start()

    def stop(self):
        with self._lock:
            self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def pending(self) -> int:
        return self._payloads.qsize()

    def enqueue(self, payload: bytes) -> None:
        with self._lock:
            if self.stopped:
                return
            try:
                self._payloads.put_nowait(payload)
            except Full:
                self.dropped += 1
                logger.warning(
                    f"{self._payloads.maxsize} messages pending on {self.topic}, "
                    f"dropping message ({self.dropped} dropped so far)"
                )

    def run(self):
        try:
            while not self.stopped:
                try:
                    payload = self._payloads.get(timeout=POLL_INTERVAL)
                except Empty:
                    continue
                self._handle(payload)
        finally:
            self._shutdown()

    def _handle(self, payload: bytes) -> None:
        try:
            self.callback(payload)
        except Exception as e:
            logger.exception(f"Unexpected error while handling message from {self.topic}: {e}")
        finally:
            self.handled += 1

    def _shutdown(self):
        try:
            self.bus.unsubscribe(self.topic)
        except Exception as e:
            logger.error(f"Error occurred while unsubscribing from {self.topic}: {e}")
        remaining = self.pending
        if remaining:
            logger.info(f"Handling {remaining} queued messages before stopping")
        while True:
            try:
                payload = self._payloads.get_nowait()
            except Empty:
                break
            self._handle(payload)
        logger.info(f"Stopped recording, {self.handled} messages handled")
