"""In-memory spatial key/value store indexed by geohash prefix.

Every geohash addresses a node of a 32-ary trie, one level per base32
character. Each node carries a small ``key -> value`` mapping, so data can be
attached at any precision and a whole area is fetched by enumerating the
subtree under its geohash.
"""

import logging
import threading
from typing import Iterator, Optional

from geohash_codec import ALPHABET, DECODE_MAP, Geohash, globe, valid, validate
from geohash_errors import GeohashNotFound, KeyNotFound

logger = logging.getLogger(__name__)


class Node:
    """Single node in the geohash trie."""

    __slots__ = ("geohash", "parent", "children", "data")

    def __init__(self, geohash: str = "", parent: Optional["Node"] = None):
        self.geohash = geohash
        self.parent = parent
        self.children: list[Optional[Node]] = [None] * len(ALPHABET)
        self.data: dict[str, str] = {}

    def __repr__(self) -> str:
        children = "".join(ALPHABET[i] for i, c in enumerate(self.children) if c)
        return f"Node(geohash={self.geohash!r}, children={children!r}, data={self.data!r})"

    def is_leaf(self) -> bool:
        return not any(self.children)


class GeohashStore:
    """Thread-safe geohash trie.

    All operations are serialized under one lock, enumeration included.
    Deleting the last key of a node leaves the node in place; call
    :meth:`prune` to drop empty branches.
    """

    def __init__(self, codec: Optional[Geohash] = None):
        self.codec = codec or globe
        self.root = Node()
        self._lock = threading.RLock()

    def _walk(self, geohash: str, create: bool = False) -> Optional[Node]:
        node = self.root
        for char in geohash:
            i = DECODE_MAP[char]
            child = node.children[i]
            if child is None:
                if not create:
                    return None
                child = Node(node.geohash + char, parent=node)
                node.children[i] = child
            node = child
        return node

    def _find(self, geohash: str) -> Node:
        node = self._walk(validate(geohash))
        if node is None:
            raise GeohashNotFound(geohash)
        return node

    def _iter_nodes(self, node: Node) -> Iterator[Node]:
        # Pre-order following the alphabet, which is also lexicographic order.
        # Explicit stack, geohashes have no length limit.
        stack = [node]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(c for c in reversed(node.children) if c is not None)

    def _iter_populated(self, node: Node) -> Iterator[Node]:
        return (n for n in self._iter_nodes(node) if n.data)

    def __contains__(self, geohash) -> bool:
        if not valid(geohash):
            return False
        with self._lock:
            return self._walk(geohash) is not None

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for _ in self._iter_populated(self.root))

    def set(self, geohash: str, key: str, value: str) -> None:
        validate(geohash)
        with self._lock:
            self._walk(geohash, create=True).data[key] = value

    def get(self, geohash: str, key: str) -> str:
        with self._lock:
            node = self._find(geohash)
            try:
                return node.data[key]
            except KeyError:
                raise KeyNotFound(geohash, key) from None

    def get_all_data(self, geohash: str) -> dict[str, str]:
        """Return a copy of the data attached at ``geohash``."""
        with self._lock:
            return dict(self._find(geohash).data)

    def get_all_children(self, geohash: str) -> list[str]:
        """Return every geohash under ``geohash`` (itself included) that holds data."""
        with self._lock:
            node = self._find(geohash)
            return [n.geohash for n in self._iter_populated(node)]

    def get_region(self, geohash: str) -> dict[str, dict[str, str]]:
        """Return the data of every populated geohash under ``geohash``, keyed by geohash."""
        with self._lock:
            node = self._find(geohash)
            return {n.geohash: dict(n.data) for n in self._iter_populated(node)}

    def get_values(self, prefix: str, key: str) -> dict[str, str]:
        """Return ``{geohash: value}`` for every geohash under ``prefix`` holding ``key``.

        An empty prefix scans the whole store.
        """
        with self._lock:
            node = self._find(prefix) if prefix else self.root
            return {
                n.geohash: n.data[key] for n in self._iter_nodes(node) if key in n.data
            }

    def get_neighbors(self, geohash: str) -> dict[str, list[str]]:
        """Return, per compass direction, the populated geohashes in each adjacent cell."""
        adjacent = self.codec.neighbors(validate(geohash))
        result = {}
        with self._lock:
            for direction, neighbor in adjacent.items():
                node = self._walk(neighbor)
                if node is None:
                    result[direction] = []
                else:
                    result[direction] = [n.geohash for n in self._iter_populated(node)]
        return result

    def delete(self, geohash: str, key: str) -> None:
        with self._lock:
            node = self._find(geohash)
            if key not in node.data:
                raise KeyNotFound(geohash, key)
            del node.data[key]

    def clear(self, geohash: str) -> None:
        """Drop all data at ``geohash``, its children are left untouched."""
        with self._lock:
            self._find(geohash).data = {}

    def prune(self) -> int:
        """Remove empty leaf nodes bottom-up. Returns the number of nodes removed."""
        removed = 0
        with self._lock:
            # Reversed pre-order visits every descendant before its ancestors
            for node in reversed(list(self._iter_nodes(self.root))):
                if node.parent is None or node.data or not node.is_leaf():
                    continue
                node.parent.children[DECODE_MAP[node.geohash[-1]]] = None
                node.parent = None
                removed += 1
        logger.debug("Pruned %d empty nodes", removed)
        return removed
