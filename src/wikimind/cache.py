import copy
import hashlib
import json
import logging
import sqlite3
import threading
import time
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path

import zstandard as zstd

logger = logging.getLogger(__name__)


def _utc_now_iso():
    return datetime.now(timezone.utc).isoformat()


def cache_key(prefix, *parts):
    """Stable key: prefix plus an md5 of the JSON-serialized parts."""
    serialized = json.dumps(parts, ensure_ascii=True, sort_keys=True, separators=(",", ":"))
    digest = hashlib.md5(serialized.encode("utf-8")).hexdigest()
    return f"{prefix}:{digest}"


class MemoryCache:
    """In-process LRU with per-entry expiry."""

    def __init__(self, max_entries=2048, clock=time.monotonic):
        self.max_entries = max_entries
        self._clock = clock
        self._entries = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _evict_if_needed(self):
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def get(self, key, default=None):
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                self.misses += 1
                return default
            expires_at, value = cached
            if expires_at <= self._clock():
                del self._entries[key]
                self.misses += 1
                return default
            self._entries.move_to_end(key)
            self.hits += 1
            return copy.deepcopy(value)

    def put(self, key, value, ttl):
        if ttl <= 0:
            return
        with self._lock:
            self._entries[key] = (self._clock() + ttl, copy.deepcopy(value))
            self._entries.move_to_end(key)
            self._evict_if_needed()

    def remember(self, key, ttl, producer):
        """Return the live value for ``key`` or compute, store and return it."""
        sentinel = object()
        cached = self.get(key, sentinel)
        if cached is not sentinel:
            return cached
        value = producer()
        self.put(key, value, ttl)
        return value

    def __len__(self):
        return len(self._entries)


class SQLiteCache:
    """SQLite-backed TTL cache; values are stored as zstd-compressed JSON."""

    def __init__(self, db_path, clock=time.time):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._clock = clock
        self._local = threading.local()
        self._init_lock = threading.Lock()
        self._initialized = False
        self.hits = 0
        self.misses = 0

    def _get_conn(self):
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(self.db_path)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            conn.execute("PRAGMA busy_timeout=5000")
            self._local.conn = conn
        if not self._initialized:
            with self._init_lock:
                if not self._initialized:
                    conn.execute(
                        """
                        CREATE TABLE IF NOT EXISTS entries (
                            key TEXT PRIMARY KEY,
                            payload BLOB,
                            expires_at REAL,
                            updated_at TEXT
                        )
                        """
                    )
                    conn.commit()
                    self._initialized = True
        return conn

    def _encode(self, value):
        raw = json.dumps(value, ensure_ascii=False).encode("utf-8")
        return zstd.ZstdCompressor().compress(raw)

    def _decode(self, payload):
        raw = zstd.ZstdDecompressor().decompress(payload)
        return json.loads(raw.decode("utf-8"))

    def delete(self, key):
        conn = self._get_conn()
        conn.execute("BEGIN")
        conn.execute("DELETE FROM entries WHERE key = ?", (key,))
        conn.commit()

    def get(self, key, default=None):
        conn = self._get_conn()
        row = conn.execute("SELECT payload, expires_at FROM entries WHERE key = ?", (key,)).fetchone()
        if row is None:
            self.misses += 1
            return default
        payload, expires_at = row
        if expires_at <= self._clock():
            self.delete(key)
            self.misses += 1
            return default
        try:
            value = self._decode(payload)
        except (zstd.ZstdError, ValueError) as exc:
            logger.warning("[!] Dropping undecodable cache entry %s: %s", key, exc)
            self.delete(key)
            self.misses += 1
            return default
        self.hits += 1
        return value

    def put(self, key, value, ttl):
        if ttl <= 0:
            return
        conn = self._get_conn()
        conn.execute("BEGIN")
        conn.execute(
            """
            INSERT INTO entries (key, payload, expires_at, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                payload=excluded.payload,
                expires_at=excluded.expires_at,
                updated_at=excluded.updated_at
            """,
            (key, self._encode(value), self._clock() + ttl, _utc_now_iso()),
        )
        conn.commit()

    def remember(self, key, ttl, producer):
        sentinel = object()
        cached = self.get(key, sentinel)
        if cached is not sentinel:
            return cached
        value = producer()
        self.put(key, value, ttl)
        return value

    def purge_expired(self):
        """Delete every expired row and return how many were removed."""
        conn = self._get_conn()
        conn.execute("BEGIN")
        cursor = conn.execute("DELETE FROM entries WHERE expires_at <= ?", (self._clock(),))
        conn.commit()
        return cursor.rowcount

    def close(self):
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            del self._local.conn


class NullCache:
    """Cache that never stores anything."""

    hits = 0
    misses = 0

    def get(self, key, default=None):
        return default

    def put(self, key, value, ttl):
        return None

    def remember(self, key, ttl, producer):
        return producer()


def build_cache(settings):
    """Instantiate the backend named by ``settings.cache_backend``."""
    backend = settings.cache_backend
    if backend == "sqlite":
        logger.info("[*] Using SQLite cache at %s", settings.cache_path)
        return SQLiteCache(settings.cache_path)
    if backend == "none":
        return NullCache()
    return MemoryCache(max_entries=settings.memory_cache_size)
