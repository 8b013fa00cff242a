"""Tests for structflow/core: range values, variables, universes, evidence."""

from __future__ import annotations

import pytest

from structflow.core.types import STAR, Regular, Variable, _Star, extend
from structflow.core.universe import Universe
from structflow.elements.atomic import Constant, Flip
from structflow.elements.compound import Apply
from structflow.errors import IrregularValueError


class TestExtended:
    """Regular values and the irregular value."""

    def test_regular(self):
        r = Regular(3)
        assert r.is_regular
        assert r.value == 3
        assert r == Regular(3)
        assert hash(r) == hash(Regular(3))

    def test_star_is_singleton(self):
        assert _Star() is STAR
        assert not STAR.is_regular
        assert repr(STAR) == "*"

    def test_star_has_no_value(self):
        with pytest.raises(IrregularValueError):
            STAR.value

    def test_irregular_value_error_is_value_error(self):
        with pytest.raises(ValueError):
            STAR.value

    def test_type_distinguishes_entries(self):
        """Equal-comparing values of different types are different entries."""
        assert Regular(True) != Regular(1)
        assert Regular(False) != Regular(0)
        assert len({Regular(True), Regular(1), Regular(1.0)}) == 3
        assert Regular(1) == Regular(1)

    def test_extend(self):
        assert extend(2) == Regular(2)
        assert extend(STAR) is STAR
        r = Regular("a")
        assert extend(r) is r


class TestVariable:
    """Tests for the factor Variable dataclass."""

    def test_range_is_extended(self):
        v = Variable("x", [1, 2, STAR])
        assert v.range == [Regular(1), Regular(2), STAR]
        assert v.num_states == 3
        assert v.regular_values == [1, 2]

    def test_empty_range(self):
        with pytest.raises(ValueError, match="empty"):
            Variable("x", [])

    def test_repeated_range(self):
        with pytest.raises(ValueError, match="repeated"):
            Variable("x", ["a", "a"])

    def test_index_of(self):
        v = Variable("x", ["a", "b", STAR])
        assert v.index_of("b") == 1
        assert v.index_of(Regular("a")) == 0
        assert v.index_of(STAR) == 2

    def test_index_of_missing(self):
        v = Variable("x", ["a"])
        with pytest.raises(ValueError, match="not in the range"):
            v.index_of("z")

    def test_mixed_bool_and_int_range(self):
        v = Variable("x", [0, 1, False, True])
        assert v.num_states == 4
        assert v.index_of(False) == 2
        assert v.index_of(1) == 1

    def test_identity(self):
        """Variables with equal ranges are still different."""
        v1 = Variable("x", [0, 1])
        v2 = Variable("x", [0, 1])
        assert v1 != v2
        assert v1.id != v2.id
        assert len({v1, v2}) == 2


class TestUniverse:
    """Tests for the Universe context manager."""

    def test_elements_join_active_universe(self):
        with Universe() as u:
            f = Flip(0.5)
        assert f.universe is u
        assert u.elements == [f]

    def test_context_restored(self):
        outer = Universe.get_active_context()
        with Universe():
            pass
        assert Universe.get_active_context() is outer

    def test_nested_contexts(self):
        with Universe() as u1:
            with Universe() as u2:
                assert Universe.get_active_context() is u2
            assert Universe.get_active_context() is u1

    def test_reentrant(self):
        u = Universe()
        outer = Universe.get_active_context()
        with u:
            with u:
                assert Universe.get_active_context() is u
            assert Universe.get_active_context() is u
        assert Universe.get_active_context() is outer

    def test_default_universe(self):
        default = Universe.reset_default()
        assert Universe.current() is default
        c = Constant(1)
        assert c.universe is default

    def test_automatic_names(self):
        with Universe() as u:
            a = Flip(0.5)
            b = Constant(2)
        assert a.name == "flip_0"
        assert b.name == "constant_1"
        assert u.get_element("flip_0") is a

    def test_duplicate_name(self):
        with Universe():
            Flip(0.5, name="rain")
            with pytest.raises(ValueError, match="already exists"):
                Flip(0.2, name="rain")

    def test_automatic_name_skips_taken_names(self):
        with Universe() as u:
            named = Flip(0.5, name="flip_1")
            a = Flip(0.5)
            b = Flip(0.5)
        assert named.name == "flip_1"
        assert a.name == "flip_0"
        assert b.name == "flip_2"
        assert len(u.variables) == 3

    def test_fresh_name(self):
        with Universe() as u:
            Flip(0.5, name="X0")
            Flip(0.5, name="X0_1")
        assert u.fresh_name("X1") == "X1"
        assert u.fresh_name("X0") == "X0_2"

    def test_missing_element(self):
        with Universe() as u:
            pass
        with pytest.raises(KeyError):
            u.get_element("nothing")

    def test_evidence_lists(self):
        with Universe() as u:
            a = Flip(0.5)
            b = Flip(0.5)
            c = Flip(0.5)
        a.observe(True)
        c.add_constraint(lambda v: 2.0)
        assert u.conditioned_elements == [a]
        assert u.constrained_elements == [c]
        assert b not in u.conditioned_elements

    def test_owned_by(self):
        u = Universe()
        owner = object()
        with u.owned_by(owner):
            f = Flip(0.5)
            assert u.current_owner is owner
        assert f.owner is owner
        assert f.universe is u
        assert u.current_owner is None

    def test_repr(self):
        assert "elements=0" in repr(Universe("m"))


class TestEvidence:
    """Conditions, observations and constraints on elements."""

    def test_observe(self):
        with Universe():
            f = Flip(0.5)
        f.observe(True)
        assert f.is_observed
        assert f.is_conditioned
        assert f.observation is True
        assert f.condition_weight(Regular(True)) == 1.0
        assert f.condition_weight(Regular(False)) == 0.0

    def test_star_never_satisfies_condition(self):
        with Universe():
            f = Flip(0.5)
        f.add_condition(lambda v: True)
        assert f.condition_weight(STAR) == 0.0

    def test_unobserve(self):
        with Universe():
            f = Flip(0.5)
        f.observe(False)
        f.unobserve()
        assert not f.is_observed
        assert not f.is_conditioned
        assert f.condition_weight(Regular(True)) == 1.0

    def test_observe_replaces_conditions(self):
        with Universe():
            f = Flip(0.5)
        f.add_condition(lambda v: v)
        f.observe(False)
        assert len(f.conditions) == 1
        assert f.condition_weight(Regular(False)) == 1.0

    def test_constraint_weights_multiply(self):
        with Universe():
            f = Flip(0.5)
        f.add_constraint(lambda v: 2.0 if v else 1.0)
        f.add_constraint(lambda v: 0.5)
        assert f.constraint_weight(Regular(True)) == pytest.approx(1.0)
        assert f.constraint_weight(Regular(False)) == pytest.approx(0.5)
        assert f.constraint_weight(STAR) == 1.0
        f.remove_constraints()
        assert not f.is_constrained


class TestOperators:
    """Operator overloads build Apply elements."""

    def test_add_constant(self):
        with Universe() as u:
            a = Flip(0.5)
            b = a + 1
        assert isinstance(b, Apply)
        assert b.universe is u
        assert b.args[0] is a
        assert isinstance(b.args[1], Constant)
        assert b.compute(True, 1) == 2

    def test_mul(self):
        with Universe():
            a = Constant(3)
            b = Constant(4)
            c = a * b
        assert c.compute(3, 4) == 12

    def test_logic(self):
        with Universe():
            a = Flip(0.5)
            b = Flip(0.5)
            both = a & b
            either = a | b
        assert both.compute(True, False) is False
        assert either.compute(True, False) is True
