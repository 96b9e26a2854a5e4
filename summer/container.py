"""The inversion-of-control container that builds and caches singleton beans."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from typing import Any, TypeVar

from summer.core import (
    BeanDefinition,
    BeanDefinitionMetadata,
    BeanProvider,
    registered_components,
)
from summer.errors import (
    BeanAlreadyExistsError,
    BeanNotFoundError,
    ConstructorError,
    ContainerNotInitializedError,
    DependencyCycleError,
    InstantiationError,
    IocError,
    MultipleBeansFoundError,
    TypeMismatchError,
)

_log = logging.getLogger(__name__)

B = TypeVar("B")


class IocContainer(BeanProvider):
    """Holds bean definitions and hands out lazily created singleton beans.

    ``metadata`` is the component metadata read by :meth:`initialize`; when it
    is ``None`` the components registered with ``@component`` are used.
    """

    def __init__(self, metadata: Iterable[BeanDefinitionMetadata] | None = None) -> None:
        self._metadata = None if metadata is None else tuple(metadata)
        self._definitions: dict[str, BeanDefinition] = {}
        self._singletons: dict[str, Any] = {}
        self._beans_by_type: dict[type, list[str]] = {}
        self._in_creation: dict[str, None] = {}
        self._initialized = False
        self._init_lock = threading.RLock()
        self._state_lock = threading.RLock()

    @property
    def initialized(self) -> bool:
        """Whether :meth:`initialize` has completed."""
        with self._init_lock:
            return self._initialized

    def initialize(self) -> None:
        """Register every component definition; does nothing if already done."""
        with self._init_lock:
            if self._initialized:
                return
            _log.info("Initializing Summer IOC container...")
            metadata = registered_components() if self._metadata is None else self._metadata
            for item in metadata:
                _log.debug(
                    "Registering bean definition: name='%s', type=%r",
                    item.bean_name,
                    item.bean_type,
                )
                self._register(BeanDefinition.from_metadata(item))
            self._initialized = True
            _log.info("Summer IOC container initialized successfully.")

    def register_bean_definition(self, definition: BeanDefinition) -> None:
        """Register a definition; allowed before and after initialisation."""
        _log.info("Dynamically registering bean definition: '%s'", definition.bean_name)
        self._register(definition)

    def _register(self, definition: BeanDefinition) -> None:
        name = definition.bean_name
        with self._state_lock:
            if name in self._definitions:
                _log.error(
                    "Bean registration failed: Bean with name '%s' already exists.", name
                )
                raise BeanAlreadyExistsError(name)
            self._definitions[name] = definition
            self._beans_by_type.setdefault(definition.bean_type, []).append(name)
        _log.debug("Successfully registered bean definition: '%s'", name)

    def _names_for_type(self, bean_type: type) -> list[str]:
        with self._state_lock:
            return list(self._beans_by_type.get(bean_type, ()))

    def get_bean_by_type(self, bean_type: type) -> Any:
        """Provider lookup used by bean constructors.

        Failures while building the matching bean surface as a plain
        :class:`ConstructorError`.
        """
        if not self.initialized:
            raise ContainerNotInitializedError()
        names = self._names_for_type(bean_type)
        if not names:
            raise BeanNotFoundError(bean_type=bean_type)
        if len(names) > 1:
            raise MultipleBeansFoundError(bean_type)
        try:
            return self._get_by_name(names[0])
        except IocError as exc:
            raise ConstructorError() from exc

    def get_bean_by_name(self, name: str, expected_type: type[B] | None = None) -> B:
        """Return the bean called ``name``, checking it is an ``expected_type``."""
        _log.debug("Requesting bean by name: '%s', expected type: %r", name, expected_type)
        instance = self._get_by_name(name)
        if expected_type is not None and not isinstance(instance, expected_type):
            _log.error(
                "Type mismatch for bean '%s': Requested type %r, but stored type is %r.",
                name,
                expected_type,
                type(instance),
            )
            raise TypeMismatchError(name, expected_type, type(instance))
        return instance

    def get_bean(self, bean_type: type[B]) -> B:
        """Return the single bean registered for ``bean_type``."""
        names = self._names_for_type(bean_type)
        if not names:
            raise BeanNotFoundError(bean_type=bean_type)
        if len(names) > 1:
            raise MultipleBeansFoundError(bean_type)
        return self.get_bean_by_name(names[0], bean_type)

    def _get_by_name(self, name: str) -> Any:
        if not self.initialized:
            _log.warning("Attempted to get bean '%s' before container initialization.", name)
            raise ContainerNotInitializedError()
        with self._state_lock:
            if name in self._singletons:
                _log.debug("Cache hit for bean '%s'", name)
                return self._singletons[name]
        _log.debug("Cache miss for bean '%s', attempting instantiation.", name)
        return self._instantiate(name)

    def _instantiate(self, name: str) -> Any:
        with self._state_lock:
            if name in self._in_creation:
                path = list(self._in_creation)
                _log.error(
                    "Dependency cycle detected while creating bean '%s'. Path: %r", name, path
                )
                raise DependencyCycleError(name, path)
            self._in_creation[name] = None
            definition = self._definitions.get(name)
        try:
            if definition is None:
                _log.error(
                    "Bean definition not found for name '%s' during instantiation attempt.",
                    name,
                )
                raise BeanNotFoundError(name=name)
            try:
                instance = definition.constructor(self)
            except ConstructorError as exc:
                _log.error("Failed to instantiate bean '%s': %s", name, exc)
                raise InstantiationError(name, str(exc)) from exc
            with self._state_lock:
                # Another thread may have finished the same bean in the meantime.
                return self._singletons.setdefault(name, instance)
        finally:
            with self._state_lock:
                self._in_creation.pop(name, None)