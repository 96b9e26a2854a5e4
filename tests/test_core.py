import dataclasses

import pytest

from summer.core import (
    BeanDefinition,
    BeanDefinitionMetadata,
    BeanProvider,
    component,
    registered_components,
)
from summer.errors import BeanNotFoundError, ConstructorError


class DictProvider(BeanProvider):
    def __init__(self, beans):
        self.beans = beans

    def get_bean_by_type(self, bean_type):
        try:
            return self.beans[bean_type]
        except KeyError:
            raise BeanNotFoundError(bean_type=bean_type) from None


def _metadata_for(cls):
    return [m for m in registered_components() if m.bean_type is cls]


def test_bean_provider_is_abstract():
    with pytest.raises(TypeError):
        BeanProvider()


def test_concrete_provider_lookup_and_error():
    provider = DictProvider({int: 7})
    definition = BeanDefinition("seven", int, lambda p: p.get_bean_by_type(int))
    assert definition.constructor(provider) == 7
    with pytest.raises(BeanNotFoundError) as info:
        provider.get_bean_by_type(str)
    assert info.value.bean_type is str


def test_component_registers_metadata_and_returns_class():
    @component
    class Greeter:
        def __init__(self):
            self.greeting = "hi"

    assert Greeter.__name__ == "Greeter"
    found = _metadata_for(Greeter)
    assert len(found) == 1
    assert found[0].bean_name == "Greeter"
    assert found[0].bean_type is Greeter


def test_component_constructor_builds_fresh_instances():
    @component
    class Counter:
        def __init__(self, start=3):
            self.value = start

    (meta,) = _metadata_for(Counter)
    provider = DictProvider({})
    first = meta.constructor(provider)
    second = meta.constructor(provider)
    assert isinstance(first, Counter)
    assert first.value == 3
    assert first is not second


def test_component_requires_no_argument_construction():
    before = len(registered_components())
    with pytest.raises(TypeError):

        @component
        class NeedsArg:
            def __init__(self, dependency):
                self.dependency = dependency

    assert len(registered_components()) == before


def test_component_requires_keyword_only_defaults():
    before = len(registered_components())
    with pytest.raises(TypeError):

        @component
        class NeedsKeyword:
            def __init__(self, *, dependency):
                self.dependency = dependency

    assert len(registered_components()) == before


def test_component_rejects_non_class():
    with pytest.raises(TypeError):
        component(lambda: None)


def test_constructor_failure_becomes_constructor_error():
    @component
    class Broken:
        def __init__(self):
            raise RuntimeError("cannot start")

    (meta,) = _metadata_for(Broken)
    with pytest.raises(ConstructorError) as info:
        meta.constructor(DictProvider({}))
    assert info.value.message == "cannot start"
    assert isinstance(info.value.__cause__, RuntimeError)


def test_constructor_error_passes_through_unchanged():
    original = ConstructorError("explicit")

    @component
    class Explicit:
        def __init__(self):
            raise original

    (meta,) = _metadata_for(Explicit)
    with pytest.raises(ConstructorError) as info:
        meta.constructor(DictProvider({}))
    assert info.value is original


def test_registration_order_is_kept():
    @component
    class First:
        pass

    @component
    class Second:
        pass

    names = [m.bean_name for m in registered_components()]
    assert names.index("First") < names.index("Second")


def test_registered_components_is_a_snapshot():
    snapshot = registered_components()

    @component
    class Later:
        pass

    assert all(m.bean_type is not Later for m in snapshot)
    assert len(registered_components()) == len(snapshot) + 1


def test_definition_from_metadata_copies_fields():
    def build(provider):
        return provider.get_bean_by_type(int) * 2

    meta = BeanDefinitionMetadata("doubler", int, build)
    definition = BeanDefinition.from_metadata(meta)
    assert definition.bean_name == "doubler"
    assert definition.bean_type is int
    assert definition.constructor is build
    assert definition.constructor(DictProvider({int: 21})) == 42


def test_definition_is_immutable_and_comparable():
    def build(provider):
        return None

    a = BeanDefinition("x", str, build)
    b = BeanDefinition("x", str, build)
    assert a == b
    with pytest.raises(dataclasses.FrozenInstanceError):
        a.bean_name = "y"