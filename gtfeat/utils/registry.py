"""
Setup for registry design pattern, which saves all image describer classes by name so that a describer can be
re-created from its persisted configuration.

Heavy inspiration from:
https://charlesreid1.github.io/python-patterns-the-registry.html

Author: Kevin Fu
"""

import abc
from typing import Any, Callable, Dict, Tuple


class RegistryHolder(type):
    """Class that defines central registry and automatically registers classes using it as metaclass."""

    REGISTRY: Dict[str, type] = {}

    def __new__(cls: type, name: str, bases: Tuple[Any], attrs: Dict[str, Callable]) -> type:
        """
        Every time a new describer class is **defined**, the REGISTRY here in RegistryHolder will be updated. This is
        thanks to the behavior of Python's built-in __new__().
        """

        new_cls = type.__new__(cls, name, bases, attrs)
        cls.REGISTRY[new_cls.__name__] = new_cls
        return new_cls

    @classmethod
    def get_registry(cls: type) -> Dict[str, type]:
        """Return current REGISTRY."""
        return dict(cls.REGISTRY)

    @classmethod
    def lookup(cls: type, name: str) -> type:
        """Returns the registered class with the given name.

        Raises:
            KeyError: if no class with that name was defined.
        """
        if name not in cls.REGISTRY:
            raise KeyError(f"Unknown describer type {name}, registered: {sorted(cls.REGISTRY)}")
        return cls.REGISTRY[name]


class AbstractableRegistryHolder(abc.ABCMeta, RegistryHolder):
    """Extra class to ensure describers can use both ABCMeta and RegistryHolder metaclasses."""

    pass
