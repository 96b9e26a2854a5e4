"""Exceptions raised by bean constructors and by the IoC container."""

from __future__ import annotations

from collections.abc import Iterable


def _type_name(bean_type: object) -> str:
    """Readable name of a type, qualified by its module unless it is a builtin."""
    if isinstance(bean_type, type):
        module = bean_type.__module__
        if module == "builtins":
            return bean_type.__qualname__
        return f"{module}.{bean_type.__qualname__}"
    return repr(bean_type)


class IocError(Exception):
    """Base class of every error the IoC container raises."""


class ConstructorError(Exception):
    """Raised by a bean constructor that cannot produce its bean."""

    def __init__(self, message: str | None = None) -> None:
        self.message = message
        if message is None:
            text = "Constructor error."
        else:
            text = f"Constructor error with message: {message}."
        super().__init__(text)


class ContainerNotInitializedError(IocError, ConstructorError):
    """A bean was requested before the container was initialised."""

    def __init__(self) -> None:
        self.message = None
        Exception.__init__(self, "Container has not been initialized yet.")


class BeanAlreadyExistsError(IocError):
    """A bean definition with the same name is already registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Bean with name '{name}' already exists.")


class BeanNotFoundError(IocError, ConstructorError, LookupError):
    """No bean definition matches the requested name or type."""

    def __init__(self, *, name: str | None = None, bean_type: object = None) -> None:
        if name is None and bean_type is None:
            raise ValueError("either name or bean_type must be given")
        self.name = name
        self.bean_type = bean_type
        self.message = None
        if name is not None:
            text = f"Bean definition not found for name: {name}"
        else:
            text = f"Bean definition not found for type: {_type_name(bean_type)}"
        Exception.__init__(self, text)


class MultipleBeansFoundError(IocError, ConstructorError):
    """More than one bean definition matches the requested type."""

    def __init__(self, bean_type: object) -> None:
        self.bean_type = bean_type
        self.message = None
        Exception.__init__(
            self,
            f"Multiple beans found for type: {_type_name(bean_type)}. "
            "Use qualifiers or @Primary to disambiguate.",
        )


class DependencyCycleError(IocError):
    """A bean depends, directly or indirectly, on itself."""

    def __init__(self, name: str, path: Iterable[str]) -> None:
        self.name = name
        self.path = list(path)
        super().__init__(
            f"Dependency cycle detected while creating bean '{name}'. Path: {self.path!r}"
        )


class InstantiationError(IocError):
    """A bean constructor failed."""

    def __init__(self, bean_name: str, reason: str) -> None:
        self.bean_name = bean_name
        self.reason = reason
        super().__init__(f"Failed to instantiate bean '{bean_name}': {reason}")


class TypeMismatchError(IocError, TypeError):
    """The stored bean is not of the type the caller asked for."""

    def __init__(self, bean_name: str, requested: object, stored: object) -> None:
        self.bean_name = bean_name
        self.requested = requested
        self.stored = stored
        super().__init__(
            f"Type mismatch for bean '{bean_name}': Requested {_type_name(requested)}, "
            f"but found {_type_name(stored)}"
        )


class InternalContainerError(IocError):
    """The container reached a state it should never be in."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Internal container error: {detail}")