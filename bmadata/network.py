"""
Boolean network construction: thermometer binarization and symbolic compilation of update functions
"""

import logging
import operator
import re
from dataclasses import dataclass, field
from fractions import Fraction

from biodivine_aeon import BddVariableSet, BooleanNetwork, UpdateFunction

from .config import DEFAULT_POLICY
from .errors import BuildError, DivisionByZeroError
from .expression import (
    AGGREGATE_FUNCTIONS,
    BINARY_OPERATORS,
    UNARY_FUNCTIONS,
    Aggregate,
    BinaryOp,
    Conditional,
    Literal,
    UnaryOp,
    VariableRef,
)
from .semantics import output_level, rescale_input, update_expression
from .validation import validate

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^0-9a-zA-Z_]")
_ID_ESCAPED = re.compile(r"[^0-9a-zA-Y]")


def _escape_id(value):
    return _ID_ESCAPED.sub(lambda match: f"Z{ord(match.group()):x}Z", str(value))


def canonical_name(variable):
    """
    Stable prefix shared by all bits of a variable: ``v_{id}_{name}``.

    In the id, every character outside ``[0-9A-Ya-z]`` is written as ``Z``,
    its hex code point and ``Z`` again, so ``"a-1"`` becomes ``aZ2dZ1``. The
    id part never contains ``_`` and distinct ids give distinct prefixes.
    Characters outside ``[0-9A-Za-z_]`` are dropped from the name.
    """
    return f"v_{_escape_id(variable.id)}_{_UNSAFE.sub('', variable.name or '')}"


def bit_name(variable, level):
    """Name of the bit that is true when ``variable`` reaches ``level``."""
    suffix = str(level) if level >= 0 else f"m{-level}"
    return f"{canonical_name(variable)}_{suffix}"


def bit_levels(variable):
    """
    Levels represented by the bits of a variable, in bit order.

    There is one bit per level of the domain above its lowest level. A
    constant ``[c, c]`` gets a single bit, or none when ``c`` is 0.
    """
    return variable.domain()[1:]


class Encoding:
    """
    Thermometer encoding of one variable over a BDD variable set.

    The level of a state is decided by its highest true bit, which keeps
    the level conditions mutually exclusive on every state, including
    states that are not proper thermometer codes.
    """

    def __init__(self, context, variable):
        self.variable = variable
        self.lowest = variable.domain()[0]
        self.levels = bit_levels(variable)
        self.bits = [bit_name(variable, level) for level in self.levels]
        self.literals = [context.mk_literal(name, True) for name in self.bits]
        self.conditions = self._level_conditions(context)

    def _level_conditions(self, context):
        conditions = {}
        above = context.mk_const(True)
        for level, bit in reversed(list(zip(self.levels, self.literals))):
            conditions[level] = bit.l_and(above)
            above = above.l_and(bit.l_not())
        conditions[self.lowest] = above
        return dict(sorted(conditions.items()))

    def decode(self, values):
        """Level of the variable for a mapping from bit name to bool."""
        level = self.lowest
        for bit, bit_level in zip(self.bits, self.levels):
            if values[bit]:
                level = bit_level
        return level


def _merge(cases, value, condition):
    if value in cases:
        cases[value] = cases[value].l_or(condition)
    else:
        cases[value] = condition


class _Compiler:
    """
    Compiles an expression into symbolic cases.

    A case set maps each possible value of a sub-expression to the BDD of
    the states where the sub-expression takes it. Conditions of one case set
    are pairwise disjoint and lie inside the path condition they were
    compiled under.
    """

    def __init__(self, model, target, encodings, policy):
        self.model = model
        self.target = target
        self.encodings = encodings
        self.policy = policy

    def compile(self, node, care):
        if isinstance(node, Literal):
            return {node.value: care}
        if isinstance(node, VariableRef):
            return self.variable(node.var_id, care)
        if isinstance(node, UnaryOp):
            return self.apply(UNARY_FUNCTIONS[node.op], [self.compile(node.operand, care)])
        if isinstance(node, BinaryOp):
            operands = [self.compile(node.left, care), self.compile(node.right, care)]
            return self.apply(BINARY_OPERATORS[node.op], operands)
        if isinstance(node, Aggregate):
            return self.aggregate(node, care)
        if isinstance(node, Conditional):
            return self.conditional(node, care)
        raise BuildError(f"Cannot compile expression node {node!r}")

    def variable(self, var_id, care):
        encoding = self.encodings[var_id]
        source = encoding.variable
        cases = {}
        for level, condition in encoding.conditions.items():
            condition = condition.l_and(care)
            if condition.is_false():
                continue
            value = Fraction(level)
            if self.policy.rescale_inputs:
                value = rescale_input(level, source.bounds, self.target.bounds)
            _merge(cases, value, condition)
        return cases

    def apply(self, function, operands):
        """Combine operand cases whose conditions overlap and apply ``function``."""
        combined = {(): None}
        for cases in operands:
            step = {}
            for values, condition in combined.items():
                for value, other in cases.items():
                    joint = other if condition is None else condition.l_and(other)
                    if not joint.is_false():
                        step[values + (value,)] = joint
            combined = step
        result = {}
        for values, condition in combined.items():
            try:
                value = function(*values)
            except DivisionByZeroError:
                raise BuildError(
                    f"Update function of variable {self.target.id} divides by zero on reachable states"
                ) from None
            _merge(result, value, condition)
        return result

    def aggregate(self, node, care):
        operands = [self.compile(arg, care) for arg in node.args]
        if node.op == "avg":
            total = operands[0]
            for cases in operands[1:]:
                total = self.apply(operator.add, [total, cases])
            count = Fraction(len(operands))
            return self.apply(BINARY_OPERATORS["/"], [total, {count: care}])
        function = AGGREGATE_FUNCTIONS[node.op]
        result = operands[0]
        if len(operands) == 1:
            return self.apply(function, [result])
        for cases in operands[1:]:
            result = self.apply(function, [result, cases])
        return result

    def conditional(self, node, care):
        decision = self.compile(node.condition, care)
        result = {}
        for flag, branch in ((True, node.then), (False, node.otherwise)):
            condition = decision.get(flag)
            if condition is None or condition.is_false():
                continue
            for value, case in self.compile(branch, condition).items():
                _merge(result, value, case)
        return result


@dataclass
class BooleanNetworkArtifact:
    """
    The Boolean network built from a model.

    Attributes:
        network: biodivine_aeon BooleanNetwork over all bits
        context: BddVariableSet the formulas live in
        bits: Mapping from model variable id to its bit names, lowest first
        functions: Mapping from bit name to its update function as a Bdd
        expressions: Mapping from bit name to a DNF string of that function
    """

    network: BooleanNetwork
    context: BddVariableSet
    bits: dict
    functions: dict
    expressions: dict
    encodings: dict = field(repr=False, default_factory=dict)

    @property
    def variable_names(self):
        return [name for names in self.bits.values() for name in names]

    def decode_state(self, values):
        """
        Map a Boolean state back to model levels.

        Args:
            values: Mapping from bit name to bool

        Returns:
            dict: Mapping from variable id to level
        """
        return {var_id: encoding.decode(values) for var_id, encoding in self.encodings.items()}


def _stepwise(formulas, literals):
    """Let a thermometer move one level per update."""
    count = len(formulas)
    if count < 2:
        return formulas
    result = []
    for i, formula in enumerate(formulas):
        if i == 0:
            result.append(formula.l_or(literals[1]))
        elif i == count - 1:
            result.append(formula.l_and(literals[i - 1]))
        else:
            result.append(formula.l_and(literals[i - 1]).l_or(literals[i + 1]))
    return result


def compile_variable(model, var_id, encodings, context, policy=DEFAULT_POLICY):
    """
    Compile the update function of one variable into one Bdd per bit.

    Returns:
        list: Bdds in the order of the variable's bits
    """
    target = model.get_variable(var_id)
    tree = update_expression(model, var_id, policy)
    compiler = _Compiler(model, target, encodings, policy)
    cases = compiler.compile(tree, context.mk_const(True))

    outputs = {}
    for value, condition in cases.items():
        _merge(outputs, output_level(target, value), condition)

    encoding = encodings[var_id]
    formulas = []
    for bit_level in encoding.levels:
        formula = context.mk_const(False)
        for level, condition in outputs.items():
            if level >= bit_level:
                formula = formula.l_or(condition)
        formulas.append(formula)
    if policy.stepwise:
        formulas = _stepwise(formulas, encoding.literals)
    return formulas


def _dnf(context, bdd, order):
    """
    Deterministic disjunctive normal form of a Bdd.

    Returns:
        list: Clauses, each a list of ``(bit_name, polarity)`` in bit order
    """
    if bdd.is_false():
        return []
    if bdd.is_true():
        return [[]]
    clauses = []
    for valuation in bdd.to_dnf():
        literals = [(context.get_variable_name(var), bool(value)) for var, value in valuation.items()]
        literals.sort(key=lambda item: order[item[0]])
        clauses.append(literals)
    return clauses


def _dnf_text(clauses):
    if not clauses:
        return "false"
    if clauses == [[]]:
        return "true"
    parts = []
    for clause in clauses:
        literals = [name if value else f"!{name}" for name, value in clause]
        text = " & ".join(literals)
        parts.append(f"({text})" if len(literals) > 1 and len(clauses) > 1 else text)
    return " | ".join(parts)


def _update_function(network, clauses):
    if not clauses:
        return UpdateFunction.mk_const(network, False)
    if clauses == [[]]:
        return UpdateFunction.mk_const(network, True)
    disjunction = None
    for clause in clauses:
        conjunction = None
        for name, value in clause:
            literal = UpdateFunction.mk_var(network, name)
            if not value:
                literal = UpdateFunction.mk_not(literal)
            conjunction = literal if conjunction is None else UpdateFunction.mk_and(conjunction, literal)
        disjunction = conjunction if disjunction is None else UpdateFunction.mk_or(disjunction, conjunction)
    return disjunction


def build(model, policy=DEFAULT_POLICY):
    """
    Build the Boolean network of a model.

    Every variable ``[a, b]`` is encoded by ``b - a`` thermometer bits named
    ``v_{id}_{name}_{level}``; bit ``level`` is true when the variable is at
    ``level`` or above. A constant ``[c, c]`` ranges over ``c`` and its
    knockout level 0, so it gets one bit, or none when ``c`` is 0. Each
    bit's update function is true exactly when the normalized next level of
    its variable reaches the bit's level.

    Args:
        model: The Model to convert
        policy: Evaluation policy, also used for the validation run

    Returns:
        BooleanNetworkArtifact: The network and its symbolic functions

    Raises:
        BuildError: The model has Error-severity validation issues, or an
            update function cannot be compiled

    Example:
        artifact = build(model)
        print(artifact.network.to_aeon())
    """
    report = validate(model, policy)
    if not report.ok:
        raise BuildError(
            f"Model '{model.name}' has {len(report.errors)} validation errors", issues=report.errors
        )

    names = []
    for variable in model.variables:
        names.extend(bit_name(variable, level) for level in bit_levels(variable))
    if len(set(names)) != len(names):
        raise BuildError("Variable ids and names do not give unique bit names")
    order = {name: i for i, name in enumerate(names)}
    context = BddVariableSet(names)
    encodings = {variable.id: Encoding(context, variable) for variable in model.variables}
    logger.debug(f"Binarized '{model.name}' into {len(names)} bits")

    functions = {}
    for variable in model.variables:
        formulas = compile_variable(model, variable.id, encodings, context, policy)
        functions.update(zip(encodings[variable.id].bits, formulas))
        logger.debug(f"Compiled variable {variable.id} into {len(formulas)} bit functions")

    network = BooleanNetwork(names)
    expressions = {}
    for name in names:
        clauses = _dnf(context, functions[name], order)
        expressions[name] = _dnf_text(clauses)
        regulators = sorted({literal for clause in clauses for literal, _ in clause}, key=order.get)
        for regulator in regulators:
            network.ensure_regulation({"source": regulator, "target": name, "sign": None, "essential": False})
        network.set_update_function(name, _update_function(network, clauses))
    network = network.infer_valid_graph()

    return BooleanNetworkArtifact(
        network=network,
        context=context,
        bits={var_id: list(encoding.bits) for var_id, encoding in encodings.items()},
        functions=functions,
        expressions=expressions,
        encodings=encodings,
    )
