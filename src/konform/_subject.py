"""Subjects: the immutable context chain a value is parsed in."""

from __future__ import annotations

import re
from collections.abc import Hashable
from typing import Any

from konform._stringify import type_name
from konform._types import UNSET


class Memory:
    """
    Key/value store shared by every subject descending from one root.

    Parsers use themselves as key to keep state across several invocations
    within the same validation run. A new root starts with empty memory.
    """

    def __init__(self) -> None:
        self._store: dict[Hashable, Any] = {}

    def get(self, key: Hashable, default: Any = None) -> Any:
        return self._store.get(key, default)

    def set(self, key: Hashable, value: Any) -> None:
        self._store[key] = value

    def has(self, key: Hashable) -> bool:
        return key in self._store

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"Memory({len(self._store)} entries)"


class Subject:
    """
    Base class of all subjects.

    A subject wraps the value being parsed at one step of a validation run
    and points to the subject it was derived from. Walking `source` always
    ends at exactly one Root, which owns the memory and the throw policy.

    Utility subjects describe parser steps (forwarding, rewriting, probing)
    rather than a location inside the parsed value; they are left out of the
    path unless explicitly requested.

    Example:
        root = Subject.default({"name": "x"}, "$")
        name = ArrayValue(root, "name", "x")
        name.get_path_as_string()  # "$['name']"
    """

    is_utility: bool = False

    def __init__(
        self,
        source: Subject | None,
        description: str,
        value: Any,
        throw_on_error: bool | None = None,
    ):
        self._source = source
        self._description = description
        self._value = value
        if source is None:
            self._root: Subject = self
            self._memory = Memory()
            self._throw_on_error = True if throw_on_error is None else throw_on_error
        else:
            self._root = source._root
            self._memory = source._memory
            self._throw_on_error = (
                source._throw_on_error if throw_on_error is None else throw_on_error
            )

    @staticmethod
    def default(
        value: Any, description: str | None = None, throw_on_error: bool = True
    ) -> Root:
        """Create the root subject a validation run starts with."""
        return Root(value, description, throw_on_error)

    @property
    def value(self) -> Any:
        return self._value

    @property
    def description(self) -> str:
        return self._description

    @property
    def source(self) -> Subject | None:
        return self._source

    @property
    def root(self) -> Subject:
        return self._root

    @property
    def throw_on_error(self) -> bool:
        """True if errors logged against this subject are raised immediately."""
        return self._throw_on_error

    @property
    def memory(self) -> Memory:
        return self._memory

    def chain(self, description: str, value: Any) -> Subject:
        """Return a new subject derived from this one carrying a rewritten value."""
        return Internal(self, description, value)

    def get_subject_chain(self, include_utility: bool = False) -> list[Subject]:
        """Return the subjects from the root up to this subject."""
        chain: list[Subject] = []
        node: Subject | None = self
        while node is not None:
            if include_utility or not node.is_utility:
                chain.append(node)
            node = node._source
        chain.reverse()
        return chain

    def get_path_as_string(
        self, include_utility: bool = False, include_self: bool = True
    ) -> str:
        """
        Render the path from the root to this subject.

        With include_utility=False the path only names locations inside the
        parsed value, e.g. `list[0]['name']`. With include_utility=True the
        parser steps taken on the way are rendered as well.
        """
        start = self if include_self else self._source
        if start is None:
            return ""
        nodes: list[Subject] = []
        node: Subject | None = start
        while node is not None:
            nodes.append(node)
            node = node._source
        nodes.reverse()
        parts = [
            node._path_part()
            for node in nodes
            if include_utility or not node.is_utility
        ]
        return "".join(parts).lstrip(" ")

    def _path_part(self) -> str:
        return f" {self._description}"

    def has_memory(self, key: Hashable) -> bool:
        return self._memory.has(key)

    def get_memory(self, key: Hashable, default: Any = None) -> Any:
        return self._memory.get(key, default)

    def set_memory(self, key: Hashable, value: Any) -> None:
        self._memory.set(key, value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_path_as_string(True)!r})"


class Root(Subject):
    """The subject a validation run starts with."""

    def __init__(
        self, value: Any, description: str | None = None, throw_on_error: bool = True
    ):
        super().__init__(
            None,
            type_name(value) if description is None else description,
            value,
            throw_on_error,
        )

    def _path_part(self) -> str:
        return self._description


class ParserBegin(Subject):
    """Marks the start of a parser working on the value of its source."""

    is_utility = True

    def __init__(self, source: Subject, description: str):
        super().__init__(source, description, source.value)

    def _path_part(self) -> str:
        return f" ▷{self._description}" if self._description else ""


class Internal(Subject):
    """A value rewrite inside a parser."""

    is_utility = True

    def __init__(self, source: Subject, description: str, value: Any):
        super().__init__(source, description, value)

    def _path_part(self) -> str:
        return f" {self._description}↩"


class Forwarded(Subject):
    """
    Hands a value over to another parser.

    The value defaults to the value of the source. An explicit throw policy
    can be given to leave a test context again.
    """

    is_utility = True

    def __init__(
        self,
        source: Subject,
        description: str,
        value: Any = UNSET,
        throw_on_error: bool | None = None,
    ):
        super().__init__(
            source,
            description,
            source.value if value is UNSET else value,
            throw_on_error,
        )

    def _path_part(self) -> str:
        return f" ⇒{self._description}⇒"


class Test(Subject):
    """
    Probes the value with a parser without raising on errors.

    Everything parsed below a Test subject collects its errors, whatever
    the policy of the root.
    """

    __test__ = False  # not a pytest test class
    is_utility = True

    def __init__(self, source: Subject, description: str):
        super().__init__(source, description, source.value, throw_on_error=False)

    def _path_part(self) -> str:
        return f" ⁇{self._description}⁇"


class ArrayValue(Subject):
    """An element of a sequence."""

    def __init__(self, source: Subject, key: int | str, value: Any):
        super().__init__(source, str(key), value)
        self.key = key

    def _path_part(self) -> str:
        return f"[{self.key!r}]"


_NON_WORD = re.compile(r"\W")


class PropertyValue(Subject):
    """The value stored under a named key of a mapping or record."""

    def __init__(self, source: Subject, name: str, value: Any):
        super().__init__(source, name, value)

    def _path_part(self) -> str:
        if _NON_WORD.search(self._description):
            return f"[{self._description!r}]"
        return f".{self._description}"


class ArrayKey(Subject):
    """A key of a mapping or sequence; the key itself is the value."""

    def __init__(self, source: Subject, key: Hashable):
        super().__init__(source, str(key), key)
        self.key = key

    def _path_part(self) -> str:
        return f" key {self.key!r}"


class PropertyName(Subject):
    """The name of a property of a record; the name itself is the value."""

    def __init__(self, source: Subject, name: Hashable):
        super().__init__(source, str(name), name)

    def _path_part(self) -> str:
        return f" property name {self._value!r}"


class MetaInformation(Subject):
    """
    Information derived from a value rather than contained in it, such as
    the length of a list or the keys of a mapping.
    """

    def __init__(self, source: Subject, description: str, value: Any):
        super().__init__(source, description, value)
