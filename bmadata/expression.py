"""
Update function expression trees, evaluation and BMA normalization
"""

import math
import operator
from dataclasses import dataclass
from fractions import Fraction

from .errors import DivisionByZeroError, UnboundVariableError

NUMBER = "number"
BOOLEAN = "boolean"


def _divide(left, right):
    if right == 0:
        raise DivisionByZeroError()
    return Fraction(left) / Fraction(right)


def _average(*values):
    return Fraction(sum(values)) / len(values)


# Each operator is defined once here; evaluation and the symbolic network
# builder both apply these callables to concrete operand values.
UNARY_FUNCTIONS = {
    "abs": abs,
    "ceil": lambda x: Fraction(math.ceil(x)),
    "floor": lambda x: Fraction(math.floor(x)),
    "-": operator.neg,
    "not": operator.not_,
}

BINARY_OPERATORS = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": _divide,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}

AGGREGATE_FUNCTIONS = {
    "min": lambda *values: min(values),
    "max": lambda *values: max(values),
    "avg": _average,
    "and": lambda *values: all(values),
    "or": lambda *values: any(values),
}

COMPARISONS = ("<", "<=", ">", ">=", "==", "!=")
BOOLEAN_FUNCTIONS = ("not", "and", "or")


def format_number(value):
    """
    Render a rational in BMA syntax.

    Integers print plainly, terminating fractions as decimals and anything
    else as an explicit division.
    """
    value = Fraction(value)
    if value.denominator == 1:
        return str(value.numerator)
    for digits in range(1, 64):
        scaled = value * 10 ** digits
        if scaled.denominator == 1:
            sign = "-" if scaled < 0 else ""
            text = str(abs(scaled.numerator)).rjust(digits + 1, "0")
            return f"{sign}{text[:-digits]}.{text[-digits:]}"
    return f"({value.numerator} / {value.denominator})"


class Expression:
    """Common behaviour of expression tree nodes."""

    type = NUMBER

    def children(self):
        return ()

    def references(self):
        """
        Variable ids read by this expression, in first occurrence order.

        Returns:
            list: Distinct variable ids
        """
        seen = []
        stack = [self]
        while stack:
            node = stack.pop()
            if isinstance(node, VariableRef):
                if node.var_id not in seen:
                    seen.append(node.var_id)
            else:
                stack.extend(reversed(node.children()))
        return seen

    def evaluate_raw(self, assignment):
        raise NotImplementedError

    def __str__(self):
        return self.to_bma()


@dataclass(frozen=True)
class Literal(Expression):
    value: Fraction

    def __post_init__(self):
        object.__setattr__(self, "value", Fraction(self.value))

    def evaluate_raw(self, assignment):
        return self.value

    def to_bma(self):
        return format_number(self.value)


@dataclass(frozen=True)
class VariableRef(Expression):
    var_id: object

    def evaluate_raw(self, assignment):
        try:
            return Fraction(assignment[self.var_id])
        except KeyError:
            raise UnboundVariableError(self.var_id) from None

    def to_bma(self):
        return f"var({self.var_id})"


@dataclass(frozen=True)
class UnaryOp(Expression):
    op: str
    operand: Expression

    @property
    def type(self):
        return BOOLEAN if self.op == "not" else NUMBER

    def children(self):
        return (self.operand,)

    def evaluate_raw(self, assignment):
        return UNARY_FUNCTIONS[self.op](self.operand.evaluate_raw(assignment))

    def to_bma(self):
        if self.op == "-":
            return f"-({self.operand.to_bma()})"
        return f"{self.op}({self.operand.to_bma()})"


@dataclass(frozen=True)
class BinaryOp(Expression):
    op: str
    left: Expression
    right: Expression

    @property
    def type(self):
        return BOOLEAN if self.op in COMPARISONS else NUMBER

    def children(self):
        return (self.left, self.right)

    def evaluate_raw(self, assignment):
        left = self.left.evaluate_raw(assignment)
        right = self.right.evaluate_raw(assignment)
        try:
            return BINARY_OPERATORS[self.op](left, right)
        except DivisionByZeroError:
            raise DivisionByZeroError(assignment) from None

    def to_bma(self):
        return f"({self.left.to_bma()} {self.op} {self.right.to_bma()})"


@dataclass(frozen=True)
class Aggregate(Expression):
    op: str
    args: tuple

    def __post_init__(self):
        object.__setattr__(self, "args", tuple(self.args))

    @property
    def type(self):
        return BOOLEAN if self.op in BOOLEAN_FUNCTIONS else NUMBER

    def children(self):
        return self.args

    def evaluate_raw(self, assignment):
        values = [arg.evaluate_raw(assignment) for arg in self.args]
        return AGGREGATE_FUNCTIONS[self.op](*values)

    def to_bma(self):
        return f"{self.op}({', '.join(arg.to_bma() for arg in self.args)})"


@dataclass(frozen=True)
class Conditional(Expression):
    condition: Expression
    then: Expression
    otherwise: Expression

    def children(self):
        return (self.condition, self.then, self.otherwise)

    def evaluate_raw(self, assignment):
        if self.condition.evaluate_raw(assignment):
            return self.then.evaluate_raw(assignment)
        return self.otherwise.evaluate_raw(assignment)

    def to_bma(self):
        return f"if({self.condition.to_bma()}, {self.then.to_bma()}, {self.otherwise.to_bma()})"


def round_half_away(value):
    """Round to the nearest integer, ties away from zero."""
    value = Fraction(value)
    magnitude = math.floor(abs(value) + Fraction(1, 2))
    return magnitude if value >= 0 else -magnitude


def normalize(value, low=None, high=None):
    """
    Turn a real valued result into a discrete level.

    The value is clamped into ``[low, high]`` and then rounded half away from
    zero. Both bounds are integers, so clamping and rounding commute.

    Args:
        value: Raw result of an expression
        low: Lowest level of the target variable, or None
        high: Highest level of the target variable, or None

    Returns:
        int: The normalized level
    """
    value = Fraction(value)
    if low is not None and value < low:
        value = Fraction(low)
    if high is not None and value > high:
        value = Fraction(high)
    return round_half_away(value)


def evaluate(tree, assignment, bounds=None):
    """
    Evaluate an expression and normalize the result.

    Args:
        tree: Parsed Expression
        assignment: Mapping from variable id to integer level
        bounds: Optional ``(low, high)`` range of the target variable

    Returns:
        int: The normalized level

    Raises:
        DivisionByZeroError: A divisor evaluated to zero
        UnboundVariableError: A referenced variable has no value

    Example:
        evaluate(parse("var(1) / 2"), {1: 3}, bounds=(0, 4))  # -> 2
    """
    raw = tree.evaluate_raw(assignment)
    if bounds is None:
        return normalize(raw)
    return normalize(raw, *bounds)
