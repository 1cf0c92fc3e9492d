"""Key/value backends addressed by geohash.

Every backend stores one value per geohash key in a named bucket and can
return all pairs whose key starts with a given prefix, in key order. Since
the base32 alphabet is sorted, key order is also the trie pre-order.
"""

import json
import logging
import random
import threading
from abc import ABC, abstractmethod
from bisect import bisect_left, insort
from typing import Optional

import redis

from geohash_codec import Geohash
from geohash_errors import GeohashNotFound, KeyNotFound
from geohash_store import GeohashStore

logger = logging.getLogger(__name__)


class Database(ABC):
    """Simple key/value store interface."""

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def open(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under the geohash ``key``."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or None."""

    @abstractmethod
    def get_all_by_prefix(self, prefix: str) -> dict[str, str]:
        """Return every key/value pair whose key starts with ``prefix``, ordered by key."""

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class MemoryDatabase(Database):
    """Ordered in-memory map, keys kept sorted for prefix scans."""

    def __init__(self, name: str = "memory"):
        super().__init__(name)
        self._data: dict[str, str] = {}
        self._keys: list[str] = []
        self._lock = threading.Lock()

    def open(self) -> None:
        logger.debug("Opened in-memory database %s", self.name)

    def close(self) -> None:
        logger.debug("Closed in-memory database %s", self.name)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            if key not in self._data:
                insort(self._keys, key)
            self._data[key] = value

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def get_all_by_prefix(self, prefix: str) -> dict[str, str]:
        result = {}
        with self._lock:
            i = bisect_left(self._keys, prefix)
            while i < len(self._keys) and self._keys[i].startswith(prefix):
                key = self._keys[i]
                result[key] = self._data[key]
                i += 1
        return result


class TrieDatabase(Database):
    """Adapter exposing a GeohashStore bucket through the Database interface.

    The bucket name is used as the data key at each trie node, so several
    buckets can share one store. Keys must be valid geohashes.
    """

    def __init__(self, name: str, store: Optional[GeohashStore] = None):
        super().__init__(name)
        self.store = store if store is not None else GeohashStore()

    def open(self) -> None:
        logger.debug("Opened trie bucket %s", self.name)

    def close(self) -> None:
        logger.debug("Closed trie bucket %s", self.name)

    def set(self, key: str, value: str) -> None:
        self.store.set(key, self.name, value)

    def get(self, key: str) -> Optional[str]:
        try:
            return self.store.get(key, self.name)
        except (GeohashNotFound, KeyNotFound):
            return None

    def get_all_by_prefix(self, prefix: str) -> dict[str, str]:
        try:
            return self.store.get_values(prefix, self.name)
        except GeohashNotFound:
            return {}


class RedisDatabase(Database):
    """Redis backend.

    Values live in the hash ``<name>:data``. Keys are also members of the
    sorted set ``<name>:index`` with a score of 0, so the set is ordered
    lexicographically and ZRANGEBYLEX serves prefix scans.
    """

    def __init__(
        self,
        name: str,
        url: str = "redis://localhost:6379/0",
        client: Optional[redis.Redis] = None,
    ):
        super().__init__(name)
        self.url = url
        self._client = client
        self.data_key = f"{name}:data"
        self.index_key = f"{name}:index"

    @classmethod
    def from_settings(cls, name: str, config=None) -> "RedisDatabase":
        if config is None:
            from geohash_settings import settings as config
        return cls(name, url=config.redis_url)

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError(f"Database {self.name} is not open")
        return self._client

    def open(self) -> None:
        if self._client is None:
            self._client = redis.Redis.from_url(self.url, decode_responses=True)
        self._client.ping()
        logger.debug("Opened redis database %s", self.name)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        logger.debug("Closed redis database %s", self.name)

    def set(self, key: str, value: str) -> None:
        pipe = self.client.pipeline()
        pipe.hset(self.data_key, key, value)
        pipe.zadd(self.index_key, {key: 0})
        pipe.execute()

    def get(self, key: str) -> Optional[str]:
        return self.client.hget(self.data_key, key)

    def get_all_by_prefix(self, prefix: str) -> dict[str, str]:
        if prefix:
            # Geohash keys are ASCII, so U+00FF sorts after every continuation
            keys = self.client.zrangebylex(
                self.index_key, f"[{prefix}", f"[{prefix}\xff"
            )
        else:
            keys = self.client.zrangebylex(self.index_key, "-", "+")
        if not keys:
            return {}
        values = self.client.hmget(self.data_key, keys)
        return {k: v for k, v in zip(keys, values) if v is not None}

    def delete_all(self) -> None:
        self.client.delete(self.data_key, self.index_key)


def generate_coordinates(base_lat, base_lon, radius_km=5):
    # Crude approximation: 1 degree lat/lng ~= 111km at equator
    lat_offset = (random.random() - 0.5) * 2 * radius_km / 111
    lon_offset = (random.random() - 0.5) * 2 * radius_km / 111
    return base_lat + lat_offset, base_lon + lon_offset


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    geo = Geohash.from_settings()
    db = RedisDatabase.from_settings("restaurants")

    with db:
        db.delete_all()
        nyc_lat, nyc_lon = 40.7128, -74.0060
        for i in range(40):
            lat, lon = generate_coordinates(nyc_lat, nyc_lon, 7)
            cuisine = random.choice(["Italian", "Mexican", "Chinese", "Indian", "American"])
            db.set(
                geo.encode(lat, lon, 7),
                json.dumps(
                    {
                        "name": f"Restaurant {i + 1}",
                        "cuisine": cuisine,
                        "rating": round(3 + 2 * random.random(), 2),
                    }
                ),
            )
        print("Added 40 restaurants to Redis...")

        customer = geo.encode(nyc_lat, nyc_lon, 5)
        for cell in [customer, *geo.neighbors(customer).values()]:
            found = db.get_all_by_prefix(cell)
            print(f"Found {len(found)} restaurants in cell {cell}")
            for geohash, raw in found.items():
                metadata = json.loads(raw)
                print(f" - {metadata['name']} ({metadata['cuisine']}) at {geohash}")

        db.delete_all()
