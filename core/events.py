"""Event dispatch for state changes and keystrokes

Two delivery paths exist per event kind:

* callbacks registered with ``subscribe`` run inline on the notifying
  (sampler) thread, so a slow callback delays the next poll;
* channels opened with ``open_channel`` receive each payload through a
  bounded queue. A full channel drops its oldest payload instead of
  blocking the notifier.
"""
import logging
import threading
from enum import Enum
from queue import Empty, Full, Queue

LOG = logging.getLogger("padbridge.events")


class EventKind(Enum):
    STATE_CHANGED = "state_changed"
    KEY_DOWN = "key_down"
    KEY_UP = "key_up"


class EventDispatcher:
    def __init__(self):
        self._lock = threading.Lock()
        # Tuples are replaced, never mutated, so notify() can iterate without the lock.
        self._subs = {kind: () for kind in EventKind}
        self._channels = {kind: () for kind in EventKind}

    def subscribe(self, kind, handler):
        with self._lock:
            self._subs[kind] = self._subs[kind] + (handler,)

    def unsubscribe(self, kind, handler):
        """Remove one registration of handler; unknown handlers are ignored."""
        with self._lock:
            subs = list(self._subs[kind])
            if handler in subs:
                subs.remove(handler)
                self._subs[kind] = tuple(subs)

    def subscribers(self, kind):
        return self._subs[kind]

    def open_channel(self, kind, maxsize=64):
        channel = Queue(maxsize=maxsize)
        with self._lock:
            self._channels[kind] = self._channels[kind] + (channel,)
        return channel

    def close_channel(self, kind, channel):
        with self._lock:
            self._channels[kind] = tuple(c for c in self._channels[kind] if c is not channel)

    def notify(self, kind, payload):
        for handler in self._subs[kind]:
            try:
                handler(payload)
            except Exception:
                LOG.exception("subscriber callback failed for %s", kind.value)
        for channel in self._channels[kind]:
            self._offer(channel, payload)

    @staticmethod
    def _offer(channel, payload):
        # keep only the newest payloads
        try:
            channel.put_nowait(payload)
        except Full:
            try:
                channel.get_nowait()
            except Empty:
                pass
            try:
                channel.put_nowait(payload)
            except Full:
                LOG.warning("channel full, dropped payload")
