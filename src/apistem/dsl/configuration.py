"""Inheritance-aware key/value store backing every presenter DSL."""

from typing import Any, Iterable, Iterator, List, Optional, Set, Tuple

from ..errors import ConfigurationError


class AppendList:
    """Append-only list composed with a parent's list.

    Iteration yields the parent's entries (live) followed by this node's own.
    """

    def __init__(self, parent: Optional["AppendList"] = None):
        self._parent = parent
        self._storage: List[Any] = []

    def append(self, item: Any) -> None:
        self._storage.append(item)

    def extend(self, items: Iterable[Any]) -> None:
        self._storage.extend(items)

    def to_list(self) -> List[Any]:
        inherited = self._parent.to_list() if self._parent is not None else []
        return inherited + self._storage

    def __iter__(self) -> Iterator[Any]:
        return iter(self.to_list())

    def __len__(self) -> int:
        return len(self.to_list())

    def __bool__(self) -> bool:
        return len(self) > 0

    def __contains__(self, item: Any) -> bool:
        return item in self.to_list()

    def __repr__(self) -> str:
        return f"AppendList({self.to_list()!r})"


class Configuration:
    """
    A key/value node with an optional parent node.

    Reads fall back to the parent unless the parent marked the key
    nonheritable. Nested nodes and append lists inherited from the parent
    are materialised as live children on first read, so later writes to the
    parent stay visible while writes to the child never leak upwards.

    Example:
        >>> base = Configuration()
        >>> base.nest("fields")["title"] = "a field"
        >>> child = Configuration(base)
        >>> child["fields"]["title"]
        'a field'
    """

    def __init__(self, parent: Optional["Configuration"] = None):
        self._parent = parent
        self._storage: dict = {}
        self._nonheritable: Set[str] = set()

    @property
    def parent(self) -> Optional["Configuration"]:
        return self._parent

    def get(self, key: str, default: Any = None) -> Any:
        value = self._get(key)
        return default if value is None else value

    def __getitem__(self, key: str) -> Any:
        return self._get(key)

    def set(self, key: str, value: Any) -> None:
        existing = self._get(key)
        if isinstance(existing, Configuration):
            raise ConfigurationError(f"You cannot override a nested value ('{key}')")
        if isinstance(existing, AppendList):
            raise ConfigurationError(f"You cannot override an inheritable array once set ('{key}')")
        self._storage[key] = value

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def nest(self, key: str) -> "Configuration":
        """Create (or return) the nested node stored under ``key``."""
        existing = self._get(key)
        if existing is not None and not isinstance(existing, Configuration):
            raise ConfigurationError(f"'{key}' already holds a value and cannot be nested")
        if key not in self._storage:
            self._storage[key] = Configuration()
        return self._storage[key]

    def array(self, key: str) -> AppendList:
        """Create (or return) the append list stored under ``key``."""
        existing = self._get(key)
        if existing is not None and not isinstance(existing, AppendList):
            raise ConfigurationError(f"'{key}' already holds a value and cannot become an array")
        if key not in self._storage:
            self._storage[key] = AppendList()
        return self._storage[key]

    def nonheritable(self, key: str) -> None:
        """Hide ``key`` from child nodes of this node."""
        self._nonheritable.add(key)

    def is_heritable(self, key: str) -> bool:
        return key not in self._nonheritable

    def keys(self) -> List[str]:
        result: List[str] = []
        if self._parent is not None:
            result = [k for k in self._parent.keys() if self._parent.is_heritable(k)]
        for key in self._storage:
            if key not in result:
                result.append(key)
        return result

    def items(self) -> List[Tuple[str, Any]]:
        return [(key, self._get(key)) for key in self.keys()]

    def values(self) -> List[Any]:
        return [self._get(key) for key in self.keys()]

    def __contains__(self, key: str) -> bool:
        return key in self.keys()

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self.keys())

    def __bool__(self) -> bool:
        return len(self) > 0

    def __repr__(self) -> str:
        return f"Configuration({dict(self.items())!r})"

    def _get(self, key: str) -> Any:
        if key in self._storage:
            return self._storage[key]
        if self._parent is None or not self._parent.is_heritable(key):
            return None

        inherited = self._parent._get(key)
        if isinstance(inherited, Configuration):
            self._storage[key] = Configuration(inherited)
            return self._storage[key]
        if isinstance(inherited, AppendList):
            self._storage[key] = AppendList(inherited)
            return self._storage[key]
        return inherited
