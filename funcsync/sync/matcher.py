"""Locate functions across files by a pluggable identity key."""

import logging
from abc import ABC, abstractmethod
from typing import Hashable, Iterable, Optional

from .models import FunctionUnit

logger = logging.getLogger(__name__)


class FunctionKey(ABC):
    """Strategy that decides when two functions in different files are the same."""

    name: str = ""

    @abstractmethod
    def key(self, function: FunctionUnit) -> Hashable:
        """Return the identity key of a function."""


class NameKey(FunctionKey):
    """Exact, case-sensitive name equality."""

    name = "name"

    def key(self, function: FunctionUnit) -> Hashable:
        return function.name


class NameArityKey(FunctionKey):
    """Name plus number of declared parameters."""

    name = "name_arity"

    def key(self, function: FunctionUnit) -> Hashable:
        return (function.name, function.arity)


FUNCTION_KEYS = {
    NameKey.name: NameKey,
    NameArityKey.name: NameArityKey,
}


def get_function_key(name: str) -> FunctionKey:
    """Build a key strategy from its configured name.

    Args:
        name: Strategy name ("name" or "name_arity")

    Returns:
        Function key instance

    Raises:
        ValueError: If the name is unknown
    """
    try:
        return FUNCTION_KEYS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown function key '{name}' (expected one of: {', '.join(FUNCTION_KEYS)})"
        ) from None


class FunctionMatcher:
    """Find the first function in a list that matches a target function."""

    def __init__(self, key: Optional[FunctionKey] = None):
        self.key = key or NameKey()

    def find(
        self, functions: Iterable[FunctionUnit], target: FunctionUnit
    ) -> Optional[FunctionUnit]:
        """Return the first function with the same key as target, or None.

        If several functions share the key only the first one is ever matched.
        """
        wanted = self.key.key(target)
        for function in functions:
            if self.key.key(function) == wanted:
                return function
        return None
