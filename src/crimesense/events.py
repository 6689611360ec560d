"""
events.py
----------
Change notifications: tell every interested view that a collection changed
so it can re-read from the repository.

Two transports carry each published event:
    - InProcessTransport: observer list for views living in this process.
    - MarkerTransport: writes the time of the last change under a well-known
      key in the store, so other processes sharing the database can notice
      (by polling) that something changed.

Usage:
    bus = ChangeBus([InProcessTransport(), MarkerTransport(store)])
    sub = bus.subscribe("reports", view.on_change)
    bus.publish("reports")
    sub.cancel()
"""

import logging
import threading
import time
import uuid
import weakref
from dataclasses import dataclass, replace

from crimesense import config

logger = logging.getLogger(__name__)

# Channel names, one per collection
REPORTS = "reports"
RECORDS = "records"
CONTACTS = "contacts"

LOCAL = "local"
REMOTE = "remote"


def now_millis():
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ChangeEvent:
    """A collection changed. timestamp is milliseconds since the epoch."""
    channel: str
    timestamp: int
    origin: str = LOCAL


class Transport:
    """
    Something that carries change events.

    send() is called for every publish. poll() returns events that arrived
    from somewhere else since the last poll (most transports have none).
    """

    def send(self, event):
        raise NotImplementedError

    def poll(self):
        return []


class Subscription:
    """Handle returned by subscribe(); cancel() stops further deliveries."""

    def __init__(self, transport, channel, ref):
        self._transport = transport
        self.channel = channel
        self._ref = ref

    @property
    def active(self):
        return self._transport._has(self.channel, self._ref)

    def cancel(self):
        self._transport._remove(self.channel, self._ref)


class InProcessTransport(Transport):
    """
    Observer list for subscribers in this process.

    Bound methods are held weakly, so a view that has been torn down is
    dropped instead of getting stale callbacks. Other callables are held
    until their Subscription is cancelled.

    With an executor (e.g. a ThreadPoolExecutor) each callback is submitted
    to it instead of being called inline.
    """

    def __init__(self, executor=None):
        self.executor = executor
        self._subscribers = {}
        # Reentrant: a weakref reaper can fire during gc while the lock is held
        self._lock = threading.RLock()

    def subscribe(self, channel, callback):
        if not callable(callback):
            raise TypeError("callback must be callable")

        if hasattr(callback, "__self__") and hasattr(callback, "__func__"):
            ref = weakref.WeakMethod(callback, self._make_reaper(channel))
        else:
            ref = _StrongRef(callback)

        with self._lock:
            self._subscribers.setdefault(channel, []).append(ref)
        return Subscription(self, channel, ref)

    def _make_reaper(self, channel):
        # Runs when a weakly held subscriber's owner is garbage-collected
        transport = weakref.ref(self)

        def reap(ref):
            alive = transport()
            if alive is not None:
                alive._remove(channel, ref)
        return reap

    def _has(self, channel, ref):
        with self._lock:
            return ref in self._subscribers.get(channel, [])

    def _remove(self, channel, ref):
        with self._lock:
            refs = self._subscribers.get(channel, [])
            if ref in refs:
                refs.remove(ref)

    def subscriber_count(self, channel):
        with self._lock:
            return sum(1 for ref in self._subscribers.get(channel, []) if ref() is not None)

    def send(self, event):
        # Snapshot so subscribers added during delivery wait for the next event
        with self._lock:
            refs = list(self._subscribers.get(event.channel, []))

        for ref in refs:
            callback = ref()
            if callback is None:
                continue
            if self.executor is not None:
                self.executor.submit(_deliver, callback, event)
            else:
                _deliver(callback, event)


class _StrongRef:
    """Same call interface as a weakref, but keeps the callable alive."""

    def __init__(self, callback):
        self._callback = callback

    def __call__(self):
        return self._callback


def _deliver(callback, event):
    try:
        callback(event)
    except Exception:
        # One broken view must not stop the others
        logger.exception("Subscriber %r failed handling %s", callback, event)


class MarkerTransport(Transport):
    """
    Durable last-write marker.

    On send() "<timestamp>:<nonce>" is written under `key` in the store, so two
    writes in the same millisecond still differ. poll() reads the marker back
    and reports a change when another process has written a new value. Only events on `channels` touch the marker.
    """

    def __init__(self, store, key=None, channels=(REPORTS,)):
        self.store = store
        self.key = key or config.MARKER_KEY
        self.channels = tuple(channels)
        self._last_seen = None
        self._primed = False
        self._lock = threading.Lock()

    def send(self, event):
        if event.channel not in self.channels:
            return
        value = f"{event.timestamp}:{uuid.uuid4().hex}"
        with self._lock:
            self.store.set_marker(self.key, value)
            # Our own write is not news to us
            self._last_seen = value
            self._primed = True

    def poll(self):
        value = self.store.get_marker(self.key)
        with self._lock:
            if not self._primed:
                # First look: remember where we start, nothing to report yet
                self._last_seen = value
                self._primed = True
                return []
            if value is None or value == self._last_seen:
                return []
            self._last_seen = value

        try:
            stamp = int(value.split(":", 1)[0])
        except ValueError:
            stamp = now_millis()
        return [ChangeEvent(channel, stamp, REMOTE) for channel in self.channels]


class ChangeBus:
    """
    Publishes change events to every transport and lets views subscribe.

    publish() never raises: a transport or subscriber failure is logged and
    the mutation that triggered it carries on.
    """

    def __init__(self, transports=None):
        transports = list(transports) if transports else [InProcessTransport()]
        local = [t for t in transports if isinstance(t, InProcessTransport)]
        if not local:
            local = [InProcessTransport()]
            transports.insert(0, local[0])
        self.local = local[0]
        self.transports = transports
        self._watcher = None
        self._stop = threading.Event()

    def subscribe(self, channel, callback):
        return self.local.subscribe(channel, callback)

    def publish(self, channel):
        event = ChangeEvent(channel, now_millis(), LOCAL)
        logger.info("Publishing %s change", channel)
        for transport in self.transports:
            try:
                transport.send(event)
            except Exception:
                logger.exception("Transport %s failed to send %s", type(transport).__name__, event)
        return event

    def poll(self):
        """
        Ask every transport for changes made elsewhere and hand them to local
        subscribers. Returns the events that were delivered.
        """
        delivered = []
        for transport in self.transports:
            if transport is self.local:
                continue
            try:
                events = transport.poll()
            except Exception:
                logger.exception("Transport %s failed to poll", type(transport).__name__)
                continue
            for event in events:
                self.local.send(replace(event, origin=REMOTE))
                delivered.append(event)
        return delivered

    def start_watching(self, interval=None):
        """Poll on a daemon thread every `interval` seconds until stop_watching()."""
        if self._watcher is not None and self._watcher.is_alive():
            return
        interval = config.MARKER_POLL_SECONDS if interval is None else interval
        self._stop.clear()

        def watch():
            while not self._stop.wait(interval):
                self.poll()

        # Prime markers so changes made before we started are not replayed
        self.poll()
        self._watcher = threading.Thread(target=watch, name="change-bus-watcher", daemon=True)
        self._watcher.start()

    def stop_watching(self):
        self._stop.set()
        if self._watcher is not None:
            self._watcher.join()
            self._watcher = None
