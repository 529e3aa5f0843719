from __future__ import annotations

import threading
import time

from proxygate.auth.rwlock import ReadWriteLock


def test_readers_share_the_lock() -> None:
    lock = ReadWriteLock()
    both_inside = threading.Barrier(2, timeout=2)

    def reader() -> None:
        with lock.read():
            both_inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=3)
    assert not both_inside.broken


def test_writer_excludes_readers() -> None:
    lock = ReadWriteLock()
    events: list[str] = []
    writer_inside = threading.Event()

    def writer() -> None:
        with lock.write():
            writer_inside.set()
            time.sleep(0.05)
            events.append("write-done")

    def reader() -> None:
        writer_inside.wait(timeout=2)
        with lock.read():
            events.append("read")

    w = threading.Thread(target=writer)
    r = threading.Thread(target=reader)
    w.start()
    r.start()
    w.join(timeout=3)
    r.join(timeout=3)

    assert events == ["write-done", "read"]
