"""
探测结果缓存服务
"""
import threading
import time
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar


T = TypeVar("T")


class ResultCache(Generic[T]):
    """
    固定过期时间的结果缓存

    写入后经过 ttl_seconds 即失效，读取不会刷新过期时间。
    同一个键同一时间最多只有一个计算在进行，并发请求会等待该计算结果。
    """

    def __init__(self, ttl_seconds: float = 86400, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            ttl_seconds: 缓存有效期（秒），0 表示不缓存
            clock: 单调时钟
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[T, float]] = {}
        self._entries_lock = threading.Lock()
        self._key_locks: Dict[Hashable, threading.Lock] = {}

    def get(self, key: Hashable) -> Optional[T]:
        """读取未过期的缓存值，过期项会被删除"""
        with self._entries_lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, inserted_at = entry
            if self._clock() - inserted_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: T):
        """写入缓存"""
        if self.ttl_seconds <= 0:
            return
        with self._entries_lock:
            self._entries[key] = (value, self._clock())

    def invalidate(self, key: Hashable):
        with self._entries_lock:
            self._entries.pop(key, None)

    def clear(self):
        with self._entries_lock:
            self._entries.clear()

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        """
        读取缓存，未命中时计算并写入

        compute 抛出的异常直接向上传播，失败结果不会被缓存。
        """
        value = self.get(key)
        if value is not None:
            return value

        with self._lock_for(key):
            # 等锁期间可能已有其他线程写入
            value = self.get(key)
            if value is not None:
                return value

            value = compute()
            self.set(key, value)
            return value

    def __len__(self) -> int:
        with self._entries_lock:
            return len(self._entries)

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._entries_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock
