from __future__ import annotations

from queue import Empty, Full, Queue
from typing import TypeVar

T = TypeVar("T")


def put_latest(queue_obj: Queue[T], item: T) -> None:
    """Put ``item`` without blocking, evicting the oldest entry when full."""
    try:
        queue_obj.put_nowait(item)
        return
    except Full:
        pass

    try:
        queue_obj.get_nowait()
    except Empty:
        pass

    try:
        queue_obj.put_nowait(item)
    except Full:
        pass


def drain(queue_obj: Queue[T], timeout: float = 0.0) -> list[T]:
    """Take every queued item, waiting up to ``timeout`` for the first one."""
    items: list[T] = []
    try:
        if timeout > 0.0:
            items.append(queue_obj.get(timeout=timeout))
        else:
            items.append(queue_obj.get_nowait())
    except Empty:
        return items

    while True:
        try:
            items.append(queue_obj.get_nowait())
        except Empty:
            return items
