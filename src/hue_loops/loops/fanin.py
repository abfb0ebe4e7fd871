"""
Fan-in of independent producer threads into one consumer.

Each producer runs in its own daemon thread and pushes items through an
``emit`` callable into a shared queue. The thread calling ``FanIn.run``
is the only consumer: it takes items in arrival order and hands them to
``consume`` one at a time, so whatever ``consume`` does (a controller
call) is never running twice at once.

Items from one producer keep their order. Across producers the order is
whatever the scheduler produced.
"""

from typing import Any, Callable, Optional, Sequence
import queue
import threading

Emit = Callable[[Any], None]
Producer = Callable[[Emit, threading.Event], None]

# How often blocked threads re-check for shutdown (seconds)
POLL_INTERVAL = 0.1
JOIN_TIMEOUT = 1.0


class _Done:
    """Marker a producer thread sends after its last item."""

    def __init__(self, index: int):
        self.index = index


class FanIn:
    """
    Run producers concurrently and consume their output serially.

    Args:
        producers: Callables taking ``(emit, halt)``. They should return
            once ``halt`` is set and wait on it instead of sleeping.
        consume: Called with every emitted item, from the consumer thread.
        maxsize: Queue capacity, 0 for unbounded. With a bound, producers
            block in ``emit`` until the consumer catches up.
        on_error: Called with ``(index, exception)`` when a producer raises.
            The remaining producers and the consumer keep running. Without
            it the exception goes to ``threading.excepthook``.
    """

    def __init__(
        self,
        producers: Sequence[Producer],
        consume: Callable[[Any], None],
        maxsize: int = 0,
        on_error: Optional[Callable[[int, BaseException], None]] = None,
        name: str = "fanin",
    ):
        self.producers = list(producers)
        self.consume = consume
        self.maxsize = maxsize
        self.on_error = on_error
        self.name = name

    def run(self, stop_event: Optional[threading.Event] = None) -> int:
        """
        Consume until every producer has finished and the queue is empty,
        or until ``stop_event`` is set. Returns the number of items consumed.

        If ``consume`` raises, producers are halted and the exception
        propagates.
        """
        channel: queue.Queue = queue.Queue(self.maxsize)
        halt = threading.Event()
        threads = [
            threading.Thread(
                target=self._run_producer,
                args=(index, producer, channel, halt),
                daemon=True,
                name=f"{self.name}-{index}",
            )
            for index, producer in enumerate(self.producers)
        ]
        for thread in threads:
            thread.start()

        finished = 0
        consumed = 0
        try:
            while finished < len(threads):
                if stop_event is not None and stop_event.is_set():
                    break
                try:
                    item = channel.get(timeout=POLL_INTERVAL)
                except queue.Empty:
                    continue
                if isinstance(item, _Done):
                    finished += 1
                    continue
                self.consume(item)
                consumed += 1
        finally:
            halt.set()
            for thread in threads:
                thread.join(timeout=JOIN_TIMEOUT)

        return consumed

    def _run_producer(
        self,
        index: int,
        producer: Producer,
        channel: queue.Queue,
        halt: threading.Event,
    ) -> None:
        def emit(item: Any) -> None:
            self._put(channel, item, halt)

        try:
            producer(emit, halt)
        except Exception as e:
            if self.on_error is None:
                raise
            self.on_error(index, e)
        finally:
            self._put(channel, _Done(index), halt)

    @staticmethod
    def _put(channel: queue.Queue, item: Any, halt: threading.Event) -> None:
        while not halt.is_set():
            try:
                channel.put(item, timeout=POLL_INTERVAL)
                return
            except queue.Full:
                continue
