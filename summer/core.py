"""Bean metadata, bean definitions and the component registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from summer.errors import ConstructorError

T = TypeVar("T", bound=type)

BeanConstructor = Callable[["BeanProvider"], Any]


class BeanProvider(ABC):
    """Something that can hand out beans, typically the IoC container."""

    @abstractmethod
    def get_bean_by_type(self, bean_type: type) -> Any:
        """Return the single bean registered for ``bean_type``.

        Raises an error when the provider is not initialised, when no bean
        matches, or when several do.
        """


@dataclass(frozen=True)
class BeanDefinitionMetadata:
    """What a component declares about itself when it is registered."""

    bean_name: str
    bean_type: type
    constructor: BeanConstructor


@dataclass(frozen=True)
class BeanDefinition:
    """A bean as the container knows it."""

    bean_name: str
    bean_type: type
    constructor: BeanConstructor

    @classmethod
    def from_metadata(cls, metadata: BeanDefinitionMetadata) -> BeanDefinition:
        """Build a definition from registered component metadata."""
        return cls(metadata.bean_name, metadata.bean_type, metadata.constructor)


_registry: list[BeanDefinitionMetadata] = []


def _has_required_arguments(func: Any) -> bool:
    """Whether a plain Python function needs arguments beyond its first."""
    code = getattr(func, "__code__", None)
    if code is None:
        return False
    defaults = getattr(func, "__defaults__", None) or ()
    kwdefaults = getattr(func, "__kwdefaults__", None) or {}
    positional = code.co_varnames[1 : code.co_argcount]
    if len(positional) > len(defaults):
        return True
    keyword_only = code.co_varnames[
        code.co_argcount : code.co_argcount + code.co_kwonlyargcount
    ]
    return any(name not in kwdefaults for name in keyword_only)


def _require_default_constructible(cls: type) -> None:
    candidates = [cls.__init__]
    if cls.__new__ is not object.__new__:
        candidates.append(cls.__new__)
    if any(_has_required_arguments(func) for func in candidates):
        raise TypeError(
            f"component {cls.__qualname__} must be constructible without arguments"
        )


def _default_constructor(cls: type) -> BeanConstructor:
    def construct(provider: BeanProvider) -> Any:
        try:
            return cls()
        except ConstructorError:
            raise
        except Exception as exc:
            raise ConstructorError(str(exc)) from exc

    return construct


def component(cls: T) -> T:
    """Mark a class as a component managed by the IoC container.

    The class must be constructible without arguments; its bean is named
    after the class.
    """
    if not isinstance(cls, type):
        raise TypeError("component can only decorate a class")
    _require_default_constructible(cls)
    _registry.append(
        BeanDefinitionMetadata(
            bean_name=cls.__name__,
            bean_type=cls,
            constructor=_default_constructor(cls),
        )
    )
    return cls


def registered_components() -> tuple[BeanDefinitionMetadata, ...]:
    """All component metadata registered so far, in registration order."""
    return tuple(_registry)