"""
PhageCompare Signature Cache
Bounded LRU store for MinHash signatures

Keys come either from a content hash of the normalised sequence or from a
caller-supplied stable identifier (accession, taxon label), so large
reference genomes are not rehashed on every call.

Version: 1.0.0
License: MIT
"""

import hashlib
import logging
import threading
from collections import OrderedDict, namedtuple

from .config import CACHE_MAX_BYTES, CACHE_MAX_ENTRIES
from .errors import require_positive

logger = logging.getLogger(__name__)

CacheStats = namedtuple("CacheStats", ["hits", "misses", "hit_rate", "entries", "bytes"])


def make_cache_key(sequence, k, num_hashes, canonical):
    """Content-addressed key for an ad hoc sequence (case-insensitive)"""
    digest = hashlib.sha1(sequence.upper().encode('ascii', 'replace')).hexdigest()
    return f"seq:{digest}:{k}:{num_hashes}:{int(bool(canonical))}"


def make_cache_key_from_id(stable_id, k, num_hashes, canonical):
    """Key for a named reference; the caller guarantees the id maps to one sequence"""
    return f"id:{stable_id}:{k}:{num_hashes}:{int(bool(canonical))}"


def _sizeof(value):
    nbytes = getattr(value, "nbytes", None)
    if nbytes is None:
        values = getattr(value, "values", None)
        nbytes = getattr(values, "nbytes", 0)
    return int(nbytes)


class SignatureCache:
    """
    Capacity-bounded LRU cache of signatures.

    Eviction removes the least recently used entry, one at a time, until
    both the entry-count and the byte budget are respected. ``get`` refreshes
    recency; ``has`` does not. All methods take an internal lock so a single
    cache can be shared by threads of one host process.
    """

    def __init__(self, max_entries=CACHE_MAX_ENTRIES, max_bytes=CACHE_MAX_BYTES):
        self.max_entries = require_positive("max_entries", max_entries)
        self.max_bytes = require_positive("max_bytes", max_bytes)
        self._entries = OrderedDict()
        self._bytes = 0
        self._hits = 0
        self._misses = 0
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config):
        return cls(max_entries=config.max_entries, max_bytes=config.max_bytes)

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return self.has(key)

    def get(self, key):
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry[0]

    def has(self, key):
        with self._lock:
            return key in self._entries

    def set(self, key, value):
        size = _sizeof(value)
        with self._lock:
            if key in self._entries:
                self._bytes -= self._entries.pop(key)[1]
            if size > self.max_bytes:
                logger.debug(f"Signature {key} ({size} bytes) exceeds cache budget; not cached")
                return
            self._entries[key] = (value, size)
            self._bytes += size
            self._evict()

    def _evict(self):
        while len(self._entries) > 1 and (
            len(self._entries) > self.max_entries or self._bytes > self.max_bytes
        ):
            key, (_, size) = self._entries.popitem(last=False)
            self._bytes -= size
            logger.debug(f"Evicted {key} from signature cache")

    def delete(self, key):
        with self._lock:
            entry = self._entries.pop(key, None)
            if entry is None:
                return False
            self._bytes -= entry[1]
            return True

    def clear(self):
        with self._lock:
            self._entries.clear()
            self._bytes = 0

    def get_or_compute(self, key, compute):
        """Return the cached value for key, computing and storing it on a miss.

        ``compute`` may return None (no signature possible); None is returned
        to the caller and never cached.
        """
        with self._lock:
            value = self.get(key)
            if value is not None:
                return value
            value = compute()
            if value is not None:
                self.set(key, value)
            return value

    def stats(self):
        """Read-only diagnostic snapshot"""
        with self._lock:
            lookups = self._hits + self._misses
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                hit_rate=self._hits / lookups if lookups else 0.0,
                entries=len(self._entries),
                bytes=self._bytes,
            )

    def reset_stats(self):
        with self._lock:
            self._hits = 0
            self._misses = 0
