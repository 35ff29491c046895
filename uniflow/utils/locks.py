"""読み書きロック

読み取りは並行に、書き込みは排他的に実行する
非同期処理の待機中はロックを保持しないこと
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ReadWriteLock:
    """書き込み優先の読み書きロック

    待機中のライターがいる間は新しいリーダーを受け付けない
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._readers_done = threading.Condition(self._lock)
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        """共有ロック"""
        with self._lock:
            while self._writer_active or self._writers_waiting:
                self._readers_done.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._lock:
                self._readers -= 1
                if self._readers == 0:
                    self._readers_done.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """排他ロック"""
        with self._lock:
            self._writers_waiting += 1
            try:
                while self._writer_active or self._readers:
                    self._readers_done.wait()
            finally:
                self._writers_waiting -= 1
            self._writer_active = True
        try:
            yield
        finally:
            with self._lock:
                self._writer_active = False
                self._readers_done.notify_all()
