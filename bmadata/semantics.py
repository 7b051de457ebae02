"""
BMA evaluation semantics on top of the expression engine
"""

import itertools
import logging
from dataclasses import dataclass
from fractions import Fraction
from typing import Optional

from .config import DEFAULT_POLICY, EMPTY_FORMULA_DEFAULT
from .errors import DivisionByZeroError
from .expression import Aggregate, BinaryOp, Literal, VariableRef, normalize, round_half_away
from .model import RegulationType

logger = logging.getLogger(__name__)


def rescale_input(value, source_bounds, target_bounds):
    """
    Map a regulator level onto the range of the variable it regulates.

    BMA rescales an input ``v`` of range ``[a, b]`` for a target of range
    ``[c, d]`` as ``(v - a) * (d - c) / (b - a) + c``. Constant regulators
    are passed through unchanged.
    """
    a, b = source_bounds
    c, d = target_bounds
    if a == b:
        return Fraction(value)
    return Fraction(value - a) * (d - c) / (b - a) + c


def output_level(variable, raw):
    """
    Normalize a raw update value into the next level of ``variable``.

    A constant variable may still be knocked out: a value that rounds to 0
    stays 0, anything else becomes the constant level.
    """
    if variable.is_constant and round_half_away(raw) == 0:
        return 0
    return normalize(raw, variable.range_from, variable.range_to)


def default_update_expression(model, var_id):
    """
    BMA's default target function ``avg(activators) - avg(inhibitors)``.

    Returns:
        Expression: The default function; ``0`` when there are no regulators
    """
    activators = []
    inhibitors = []
    for source, sign in model.get_regulators(var_id):
        if sign == RegulationType.INHIBITOR:
            inhibitors.append(VariableRef(source))
        else:
            activators.append(VariableRef(source))
    positive = Aggregate("avg", activators) if activators else Literal(0)
    if not inhibitors:
        return positive
    return BinaryOp("-", positive, Aggregate("avg", inhibitors))


def update_expression(model, var_id, policy=DEFAULT_POLICY):
    """
    The expression that computes the next level of a variable.

    An empty formula means identity, or BMA's default function when the
    policy asks for it.

    Raises:
        ParseError: The formula does not parse against the model
    """
    tree = model.expression(var_id)
    if tree is not None:
        return tree
    if policy.empty_formula == EMPTY_FORMULA_DEFAULT:
        return default_update_expression(model, var_id)
    return VariableRef(var_id)


def populate_default_functions(model):
    """Write BMA's default function into every variable without a formula."""
    for variable in model.variables:
        if not (variable.formula or "").strip():
            variable.formula = default_update_expression(model, variable.id).to_bma()
            logger.debug(f"Variable {variable.id} gets default function {variable.formula}")


def input_assignment(model, target_id, state, references, policy=DEFAULT_POLICY):
    """
    Values seen by the update function of ``target_id`` in ``state``.

    Args:
        model: The Model
        target_id: Variable being updated
        state: Mapping from variable id to level
        references: Variable ids read by the update function
        policy: Controls input rescaling
    """
    if not policy.rescale_inputs:
        return {var_id: state[var_id] for var_id in references}
    target = model.get_variable(target_id)
    assignment = {}
    for var_id in references:
        source = model.get_variable(var_id)
        assignment[var_id] = rescale_input(state[var_id], source.bounds, target.bounds)
    return assignment


def evaluate_variable(model, var_id, state, policy=DEFAULT_POLICY, expression=None):
    """
    Next level of one variable in a given state.

    Args:
        model: The Model
        var_id: Variable to update
        state: Mapping from variable id to current level. Only variables read
            by the update function are needed.
        policy: Evaluation policy
        expression: Pre-parsed update expression, to avoid re-parsing

    Returns:
        int: The next level, inside the variable's range

    Raises:
        ParseError: Invalid formula
        EvalError: Division by zero or missing inputs
    """
    if expression is None:
        expression = update_expression(model, var_id, policy)
    assignment = input_assignment(model, var_id, state, expression.references(), policy)
    raw = expression.evaluate_raw(assignment)
    return output_level(model.get_variable(var_id), raw)


def ordered_inputs(model, var_ids):
    """Sort variable ids by model order, dropping duplicates."""
    wanted = set(var_ids)
    return [var_id for var_id in model.variable_ids() if var_id in wanted]


def space_size(model, var_ids):
    size = 1
    for var_id in var_ids:
        size *= len(model.get_variable(var_id).domain())
    return size


def enumerate_assignments(model, var_ids, limit=None):
    """
    Yield assignments of ``var_ids`` over their domains.

    Assignments come in lexicographic order: every domain goes from min to
    max and the last variable varies fastest.

    Args:
        model: The Model
        var_ids: Variables to enumerate
        limit: Stop after this many assignments
    """
    var_ids = list(var_ids)
    ranges = [model.get_variable(var_id).domain() for var_id in var_ids]
    product = itertools.product(*ranges)
    if limit is not None:
        product = itertools.islice(product, limit)
    for values in product:
        yield dict(zip(var_ids, values))


def function_table(model, var_id, policy=DEFAULT_POLICY):
    """
    Tabulate the update function of a variable.

    Args:
        model: The Model
        var_id: Variable to tabulate
        policy: Evaluation policy

    Returns:
        tuple: ``(inputs, rows)`` where ``inputs`` lists the regulator ids
            (plus any other variable the formula reads) in model order and
            each row is ``(levels, output)``.

    Example:
        inputs, rows = function_table(model, 2)
        # inputs == [1]; rows == [((0,), 0), ((1,), 1)]
    """
    expression = update_expression(model, var_id, policy)
    declared = [source for source, _ in model.get_regulators(var_id)]
    inputs = ordered_inputs(model, declared + expression.references())
    rows = []
    for assignment in enumerate_assignments(model, inputs):
        output = evaluate_variable(model, var_id, assignment, policy, expression)
        rows.append((tuple(assignment[i] for i in inputs), output))
    return inputs, rows


@dataclass
class MonotonicityScan:
    """
    Directions observed while varying one regulator of a target.

    ``increase`` and ``decrease`` hold the first witness of each direction,
    or None if that direction never occurred.
    """

    source: object
    target: object
    increase: Optional[dict] = None
    decrease: Optional[dict] = None
    truncated: bool = False

    @property
    def observed_sign(self):
        if self.decrease is not None and self.increase is None:
            return RegulationType.INHIBITOR
        if self.increase is not None and self.decrease is None:
            return RegulationType.ACTIVATOR
        return None


def scan_monotonicity(model, source, target, policy=DEFAULT_POLICY, expression=None):
    """
    Vary ``source`` across its domain while holding every other input fixed.

    Args:
        model: The Model
        source: Regulator id
        target: Regulated variable id
        policy: Evaluation policy, ``max_assignments`` bounds the work
        expression: Pre-parsed update expression of ``target``

    Returns:
        MonotonicityScan: Witnesses of increases and decreases
    """
    if expression is None:
        expression = update_expression(model, target, policy)
    scan = MonotonicityScan(source, target)
    references = expression.references()
    if source not in references:
        return scan
    others = ordered_inputs(model, [var_id for var_id in references if var_id != source])
    levels = model.get_variable(source).domain()
    budget = max(1, policy.max_assignments // max(1, len(levels)))
    scan.truncated = space_size(model, others) > budget
    for fixed in enumerate_assignments(model, others, budget):
        previous = None
        for level in levels:
            state = dict(fixed)
            state[source] = level
            try:
                output = evaluate_variable(model, target, state, policy, expression)
            except DivisionByZeroError:
                previous = None
                continue
            if previous is not None:
                before_level, before = previous
                witness = {
                    "assignment": dict(fixed),
                    "source": source,
                    "levels": (before_level, level),
                    "outputs": (before, output),
                }
                if output > before and scan.increase is None:
                    scan.increase = witness
                elif output < before and scan.decrease is None:
                    scan.decrease = witness
            previous = (level, output)
        if scan.increase is not None and scan.decrease is not None:
            break
    return scan
