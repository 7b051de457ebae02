"""
Structural and semantic checks over a canonical model
"""

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import DEFAULT_POLICY
from .errors import DivisionByZeroError, ParseError, TypeMismatchError, UnknownVariableError
from .expression import BinaryOp
from .model import RegulationType, VariableType
from .semantics import (
    enumerate_assignments,
    evaluate_variable,
    ordered_inputs,
    scan_monotonicity,
    space_size,
    update_expression,
)

logger = logging.getLogger(__name__)


class Severity(Enum):
    ERROR = "Error"
    WARNING = "Warning"


class IssueKind(Enum):
    DUPLICATE_ID = "DuplicateId"
    MALFORMED_ID = "MalformedId"
    DANGLING_CONTAINER = "DanglingContainer"
    DANGLING_REGULATION = "DanglingRegulation"
    EMPTY_NAME = "EmptyName"
    INVALID_RANGE = "InvalidRange"
    DEGENERATE_RANGE = "DegenerateRange"
    CONSTANT_MISMATCH = "ConstantMismatch"
    PARSE_FAILURE = "ParseFailure"
    UNKNOWN_VARIABLE = "UnknownVariable"
    TYPE_MISMATCH = "TypeMismatch"
    DIVISION_BY_ZERO = "DivisionByZero"
    UNDECLARED_REGULATOR = "UndeclaredRegulator"
    MONOTONICITY_VIOLATION = "MonotonicityViolation"
    UNUSED_VARIABLE = "UnusedVariable"
    DANGLING_LAYOUT = "DanglingLayout"
    CHECK_TRUNCATED = "CheckTruncated"


@dataclass(frozen=True)
class Issue:
    severity: Severity
    kind: IssueKind
    location: str
    message: str
    witness: Optional[dict] = None

    def __str__(self):
        return f"[{self.severity.value}] {self.kind.value} at {self.location}: {self.message}"


class ValidationReport:
    """
    Every issue found in one validation pass.

    A report with no Error issues is ``ok``; a report with no issues at all
    is ``is_clean``.
    """

    def __init__(self, issues=()):
        self.issues = tuple(issues)

    def __iter__(self):
        return iter(self.issues)

    def __len__(self):
        return len(self.issues)

    def __eq__(self, other):
        if not isinstance(other, ValidationReport):
            return NotImplemented
        return self.issues == other.issues

    def __repr__(self):
        return f"ValidationReport(errors={len(self.errors)}, warnings={len(self.warnings)})"

    @property
    def errors(self):
        return [issue for issue in self.issues if issue.severity == Severity.ERROR]

    @property
    def warnings(self):
        return [issue for issue in self.issues if issue.severity == Severity.WARNING]

    @property
    def ok(self):
        return not self.errors

    @property
    def is_clean(self):
        return not self.issues

    def by_kind(self, kind):
        return [issue for issue in self.issues if issue.kind == kind]


def _valid_identifier(value):
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    return isinstance(value, str) and value.strip() != ""


def _has_division(tree):
    stack = [tree]
    while stack:
        node = stack.pop()
        if isinstance(node, BinaryOp) and node.op == "/":
            return True
        stack.extend(node.children())
    return False


def _regulation_location(regulation):
    if regulation.id is not None:
        return f"relationship {regulation.id}"
    return f"relationship {regulation.source}->{regulation.target}"


class _Validation:
    """One validation pass. Collects issues without touching the model."""

    def __init__(self, model, policy):
        self.model = model
        self.policy = policy
        self.issues = []
        self.trees = {}
        self.connected = set()
        counts = Counter(variable.id for variable in model.variables)
        self.unique_ids = {var_id for var_id, count in counts.items() if count == 1}
        self.valid_range_ids = set()

    def error(self, kind, location, message, witness=None):
        self.issues.append(Issue(Severity.ERROR, kind, location, message, witness))

    def warning(self, kind, location, message):
        self.issues.append(Issue(Severity.WARNING, kind, location, message))

    def run(self):
        self.check_identifiers()
        self.check_ranges()
        self.check_expressions()
        self.check_monotonicity()
        self.check_unused()
        return ValidationReport(self.issues)

    def _check_ids(self, items, label):
        counts = Counter()
        for item in items:
            if not _valid_identifier(item.id):
                self.error(
                    IssueKind.MALFORMED_ID,
                    f"{label} {item.id!r}",
                    "Identifier must be a non-negative integer or a non-empty string",
                )
            else:
                counts[item.id] += 1
        for item_id, count in counts.items():
            if count > 1:
                self.error(IssueKind.DUPLICATE_ID, f"{label} {item_id}", f"Identifier is used by {count} {label}s")

    def check_identifiers(self):
        model = self.model
        self._check_ids(model.variables, "variable")
        self._check_ids(model.containers, "container")
        self._check_ids([r for r in model.regulations if r.id is not None], "relationship")

        container_ids = {container.id for container in model.containers}
        for variable in model.variables:
            location = f"variable {variable.id}"
            if not str(variable.name or "").strip():
                self.warning(IssueKind.EMPTY_NAME, location, "Variable has no name")
            if variable.container_id is not None and variable.container_id not in container_ids:
                self.error(IssueKind.DANGLING_CONTAINER, location, f"Container {variable.container_id} does not exist")

        variable_ids = set(model.variable_ids())
        for regulation in model.regulations:
            for role, endpoint in (("Regulator", regulation.source), ("Target", regulation.target)):
                if endpoint not in variable_ids:
                    self.error(
                        IssueKind.DANGLING_REGULATION,
                        _regulation_location(regulation),
                        f"{role} variable {endpoint} does not exist",
                    )

    def check_ranges(self):
        for variable in self.model.variables:
            location = f"variable {variable.id}"
            low, high = variable.range_from, variable.range_to
            if not all(isinstance(bound, int) and not isinstance(bound, bool) for bound in (low, high)):
                self.error(
                    IssueKind.INVALID_RANGE,
                    location,
                    f"Range bounds must be integers, found [{low!r}, {high!r}]",
                )
                continue
            if low > high:
                self.error(IssueKind.INVALID_RANGE, location, f"Range [{low}, {high}] is empty")
                continue
            if variable.id in self.unique_ids:
                self.valid_range_ids.add(variable.id)
            if low == high:
                self.warning(IssueKind.DEGENERATE_RANGE, location, f"Range [{low}, {high}] has a single value")
                if self.model.get_regulators(variable.id):
                    self.warning(IssueKind.CONSTANT_MISMATCH, location, "Constant variable has regulators")
            elif variable.kind == VariableType.CONSTANT:
                self.warning(IssueKind.CONSTANT_MISMATCH, location, f"Constant variable has range [{low}, {high}]")

    def check_expressions(self):
        model = self.model
        for variable in model.variables:
            if variable.id not in self.unique_ids:
                continue
            location = f"variable {variable.id}"
            try:
                formula = model.expression(variable.id)
            except UnknownVariableError as e:
                self.error(IssueKind.UNKNOWN_VARIABLE, location, str(e))
                continue
            except TypeMismatchError as e:
                self.error(IssueKind.TYPE_MISMATCH, location, str(e))
                continue
            except ParseError as e:
                self.error(IssueKind.PARSE_FAILURE, location, str(e))
                continue

            tree = update_expression(model, variable.id, self.policy)
            self.trees[variable.id] = tree
            if formula is None:
                continue
            references = formula.references()
            self.connected.update(references)
            if references:
                self.connected.add(variable.id)
            declared = {source for source, _ in model.get_regulators(variable.id)}
            for var_id in references:
                if var_id not in declared:
                    self.warning(
                        IssueKind.UNDECLARED_REGULATOR,
                        location,
                        f"Formula reads variable {var_id} without a relationship",
                    )
            if variable.id in self.valid_range_ids and _has_division(tree):
                self.check_division(variable, tree, location)

    def check_division(self, variable, tree, location):
        references = ordered_inputs(self.model, tree.references())
        if not all(var_id in self.valid_range_ids for var_id in references):
            return
        limit = self.policy.max_assignments
        size = space_size(self.model, references)
        if size > limit:
            logger.warning(f"Division check of variable {variable.id} truncated to {limit} of {size} assignments")
            self.warning(IssueKind.CHECK_TRUNCATED, location, f"Division check covered {limit} of {size} assignments")
        for assignment in enumerate_assignments(self.model, references, limit):
            try:
                evaluate_variable(self.model, variable.id, assignment, self.policy, tree)
            except DivisionByZeroError:
                self.error(
                    IssueKind.DIVISION_BY_ZERO,
                    location,
                    f"Division by zero when inputs are {assignment}",
                    witness=assignment,
                )
                return

    def check_monotonicity(self):
        seen = set()
        for regulation in self.model.regulations:
            key = (regulation.source, regulation.target, regulation.sign)
            if key in seen:
                continue
            seen.add(key)
            tree = self.trees.get(regulation.target)
            if tree is None or regulation.target not in self.valid_range_ids:
                continue
            if not all(var_id in self.valid_range_ids for var_id in tree.references() + [regulation.source]):
                continue
            scan = scan_monotonicity(self.model, regulation.source, regulation.target, self.policy, tree)
            location = _regulation_location(regulation)
            if scan.truncated:
                logger.warning(f"Monotonicity check of {location} truncated")
                self.warning(
                    IssueKind.CHECK_TRUNCATED,
                    location,
                    f"Monotonicity check covered at most {self.policy.max_assignments} assignments",
                )
            if regulation.sign == RegulationType.ACTIVATOR:
                witness, direction = scan.decrease, "decreases"
            else:
                witness, direction = scan.increase, "increases"
            if witness is not None:
                low, high = witness["levels"]
                before, after = witness["outputs"]
                self.error(
                    IssueKind.MONOTONICITY_VIOLATION,
                    location,
                    f"{regulation.sign.value} {regulation.source} -> {regulation.target}: target {direction} "
                    f"from {before} to {after} when the regulator goes from {low} to {high} "
                    f"with {witness['assignment']}",
                    witness=witness,
                )

    def check_unused(self):
        model = self.model
        used = set(self.connected)
        for regulation in model.regulations:
            used.add(regulation.source)
            used.add(regulation.target)
        for variable in model.variables:
            if variable.id not in used:
                self.warning(
                    IssueKind.UNUSED_VARIABLE,
                    f"variable {variable.id}",
                    "Variable takes part in no relationship and no formula",
                )

        if model.layout is None:
            return
        variable_ids = set(model.variable_ids())
        for var_id in model.layout.variables:
            if var_id not in variable_ids:
                self.warning(IssueKind.DANGLING_LAYOUT, f"layout variable {var_id}", "Layout entry has no variable")
        container_ids = {container.id for container in model.containers}
        for container_id in model.layout.containers:
            if container_id not in container_ids:
                self.warning(
                    IssueKind.DANGLING_LAYOUT,
                    f"layout container {container_id}",
                    "Layout entry has no container",
                )


def validate(model, policy=DEFAULT_POLICY):
    """
    Check a model and collect every issue found.

    Validation never modifies the model and never stops at the first
    problem. Checks that depend on a broken part of the model (an invalid
    range, an unparsable formula) are skipped for that part only.

    Args:
        model: The Model to check
        policy: Evaluation policy; ``max_assignments`` bounds the enumeration
            done by the division and monotonicity checks

    Returns:
        ValidationReport: All issues, empty when the model is clean

    Example:
        report = validate(model)
        if not report.ok:
            for issue in report.errors:
                print(issue)
    """
    report = _Validation(model, policy).run()
    logger.debug(f"Validated '{model.name}': {len(report.errors)} errors, {len(report.warnings)} warnings")
    return report
