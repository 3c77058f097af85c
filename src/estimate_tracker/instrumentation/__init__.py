"""Instrumentation used around delete operations."""

from .leaks import LeakDetector
from .listeners import EventEmitter, EventTarget, ListenerRegistry
from .pacing import debounce, delay, process_batch, throttle
from .performance import PerformanceMonitor, read_process_memory

__all__ = [
    "EventEmitter",
    "EventTarget",
    "LeakDetector",
    "ListenerRegistry",
    "PerformanceMonitor",
    "debounce",
    "delay",
    "process_batch",
    "read_process_memory",
    "throttle",
]
