"""
Filesystem watching: directory watch registration, event buffering and
translation of notifications into sync intents.
"""

from mirrorsync.watch.buffer import CoalescingBuffer, EventBuffer, PassthroughBuffer, make_buffer
from mirrorsync.watch.events import EventStream, WatchError
from mirrorsync.watch.registry import WatchRegistry
from mirrorsync.watch.translator import EventTranslator

__all__ = [
    "CoalescingBuffer",
    "EventBuffer",
    "EventStream",
    "EventTranslator",
    "PassthroughBuffer",
    "WatchError",
    "WatchRegistry",
    "make_buffer",
]
