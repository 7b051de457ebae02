"""
Tests for BMA evaluation semantics: defaults, rescaling, tables and monotonicity scans
"""

from fractions import Fraction

import pytest

from bmadata import DivisionByZeroError, Policy, RegulationType, Variable, evaluate_variable, function_table
from bmadata.semantics import (
    default_update_expression,
    enumerate_assignments,
    output_level,
    populate_default_functions,
    rescale_input,
    scan_monotonicity,
    space_size,
    update_expression,
)

from conftest import make_model


class TestDefaultFunction:
    def setup_method(self):
        self.model = make_model(
            [(1, "A", 0, 1, ""), (2, "B", 0, 2, ""), (3, "I", 0, 1, ""), (4, "T", 0, 1, "")],
            [(3, 4, "-"), (1, 4, "+"), (2, 4, "+"), (3, 2, "-")],
        )

    def test_activators_minus_inhibitors(self):
        tree = default_update_expression(self.model, 4)
        assert tree.to_bma() == "(avg(var(1), var(2)) - avg(var(3)))"

    def test_only_inhibitors(self):
        assert default_update_expression(self.model, 2).to_bma() == "(0 - avg(var(3)))"

    def test_no_regulators(self):
        assert default_update_expression(self.model, 1).to_bma() == "0"

    def test_empty_formula_policies(self):
        identity = update_expression(self.model, 1)
        assert identity.to_bma() == "var(1)"
        default = update_expression(self.model, 1, Policy(empty_formula="default"))
        assert default.to_bma() == "0"

    def test_populate_only_fills_empty_formulas(self):
        self.model.set_formula(1, "1")
        populate_default_functions(self.model)
        assert self.model.get_variable(1).formula == "1"
        assert self.model.get_variable(4).formula == "(avg(var(1), var(2)) - avg(var(3)))"
        assert self.model.expression(4) == default_update_expression(self.model, 4)


class TestLevels:
    def test_rescale_input(self):
        assert rescale_input(1, (0, 1), (0, 4)) == 4
        assert rescale_input(1, (0, 2), (0, 1)) == Fraction(1, 2)
        assert rescale_input(3, (3, 3), (0, 1)) == 3

    def test_output_level_clamps(self):
        variable = Variable(1, "A", 0, 2)
        assert output_level(variable, 5) == 2
        assert output_level(variable, Fraction(-1, 3)) == 0

    def test_constant_can_be_knocked_out(self):
        constant = Variable(1, "K", 3, 3)
        assert output_level(constant, 0) == 0
        assert output_level(constant, Fraction(1, 3)) == 0
        assert output_level(constant, 1) == 3


class TestEvaluateVariable:
    def test_identity_for_empty_formula(self, activation_model):
        assert evaluate_variable(activation_model, 1, {1: 1}) == 1
        assert evaluate_variable(activation_model, 1, {1: 0}) == 0

    def test_formula(self, activation_model):
        assert evaluate_variable(activation_model, 2, {1: 1, 2: 0}) == 1

    def test_rescaled_inputs(self):
        model = make_model([(1, "A", 0, 1, ""), (2, "B", 0, 4, "var(A)")], [(1, 2, "+")])
        assert evaluate_variable(model, 2, {1: 1}) == 1
        assert evaluate_variable(model, 2, {1: 1}, Policy(rescale_inputs=True)) == 4

    def test_division_by_zero_propagates(self):
        model = make_model([(1, "W", 0, 3, ""), (2, "V", 0, 10, "10 / var(W)")], [(1, 2, "-")])
        with pytest.raises(DivisionByZeroError):
            evaluate_variable(model, 2, {1: 0})
        assert evaluate_variable(model, 2, {1: 3}) == 3


def test_function_table_rows_in_lexicographic_order():
    model = make_model(
        [(1, "A", 0, 1, ""), (2, "B", 0, 1, ""), (3, "T", 0, 2, "var(A) + var(B)")],
        [(2, 3, "+"), (1, 3, "+")],
    )
    inputs, rows = function_table(model, 3)
    assert inputs == [1, 2]
    assert rows == [((0, 0), 0), ((0, 1), 1), ((1, 0), 1), ((1, 1), 2)]


def test_function_table_includes_declared_but_unread_regulators():
    model = make_model([(1, "A", 0, 1, ""), (2, "B", 0, 1, ""), (3, "T", 0, 1, "var(B)")], [(1, 3, "+"), (2, 3, "+")])
    inputs, rows = function_table(model, 3)
    assert inputs == [1, 2]
    assert [output for _, output in rows] == [0, 1, 0, 1]


def test_enumerate_assignments_limit():
    model = make_model([(1, "A", 0, 2, ""), (2, "B", 0, 2, "")])
    assignments = list(enumerate_assignments(model, [1, 2], limit=4))
    assert assignments == [{1: 0, 2: 0}, {1: 0, 2: 1}, {1: 0, 2: 2}, {1: 1, 2: 0}]
    assert list(enumerate_assignments(model, [])) == [{}]


class TestMonotonicityScan:
    def test_increasing(self, activation_model):
        scan = scan_monotonicity(activation_model, 1, 2)
        assert scan.observed_sign == RegulationType.ACTIVATOR
        assert scan.increase["levels"] == (0, 1)
        assert scan.decrease is None

    def test_decreasing(self):
        model = make_model([(1, "S", 0, 2, ""), (2, "T", 0, 2, "2 - var(S)")], [(1, 2, "-")])
        scan = scan_monotonicity(model, 1, 2)
        assert scan.observed_sign == RegulationType.INHIBITOR
        assert scan.decrease["outputs"] == (2, 1)

    def test_non_monotone(self):
        model = make_model([(1, "S", 0, 2, ""), (2, "T", 0, 1, "if(var(S) = 1, 1, 0)")], [(1, 2, "+")])
        scan = scan_monotonicity(model, 1, 2)
        assert scan.increase is not None and scan.decrease is not None
        assert scan.observed_sign is None

    def test_unread_source(self, activation_model):
        scan = scan_monotonicity(activation_model, 2, 1)
        assert scan.increase is None and scan.decrease is None

    def test_truncated(self):
        model = make_model(
            [(1, "S", 0, 1, ""), (2, "X", 0, 9, ""), (3, "Y", 0, 9, ""), (4, "T", 0, 1, "var(S) * var(X) * var(Y)")],
            [(1, 4, "+")],
        )
        scan = scan_monotonicity(model, 1, 4, Policy(max_assignments=10))
        assert scan.truncated


def test_enumeration_covers_constant_knockout():
    model = make_model([(1, "K", 2, 2, ""), (2, "A", 0, 1, "")])
    assert list(enumerate_assignments(model, [1, 2])) == [{1: 0, 2: 0}, {1: 0, 2: 1}, {1: 2, 2: 0}, {1: 2, 2: 1}]
    assert space_size(model, [1, 2]) == 4
