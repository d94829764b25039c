import pytest

from multisport_scoring.exceptions import ConfigurationError
from multisport_scoring.scoring import ScoringMethodRegistry, builtin_methods, register_builtin_methods
from multisport_scoring.scoring.methods import PointsMethod, StrokePlayMethod


def test_builtin_methods_are_registered(registry):
    assert registry.names() == sorted(method.name for method in builtin_methods())
    assert "stroke_play" in registry
    assert "tennis_match" in registry
    assert len(registry) == 8


def test_lookup_of_unknown_method_is_a_configuration_error(registry):
    with pytest.raises(ConfigurationError):
        registry.get("stableford")


def test_registering_the_same_instance_twice_is_harmless():
    registry = ScoringMethodRegistry()
    method = StrokePlayMethod()

    assert registry.register(method) is method
    assert registry.register(method) is method
    assert len(registry) == 1


def test_conflicting_registration_is_rejected():
    registry = ScoringMethodRegistry()
    registry.register(StrokePlayMethod())

    with pytest.raises(ConfigurationError):
        registry.register(StrokePlayMethod())


def test_frozen_registry_rejects_new_methods(registry):
    registry.freeze()

    assert registry.frozen
    with pytest.raises(ConfigurationError):
        registry.register(PointsMethod(name="darts"))
    # Lookups keep working
    assert registry.get("points").name == "points"


def test_register_builtin_methods_skips_known_names(registry):
    before = {method.name: method for method in registry}

    register_builtin_methods(registry)

    assert {method.name: method for method in registry} == before


def test_unnamed_method_is_rejected():
    with pytest.raises(ConfigurationError):
        ScoringMethodRegistry().register(PointsMethod(name=""))


def test_iteration_is_ordered_by_name(registry):
    assert [method.name for method in registry] == registry.names()
