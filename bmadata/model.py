"""
Canonical in-memory BMA model shared by every dialect
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import ModelError, ParseError
from .parser import parse


class VariableType(Enum):
    DEFAULT = "Default"
    CONSTANT = "Constant"
    MEMBRANE_RECEPTOR = "MembraneReceptor"

    @classmethod
    def from_str(cls, value):
        """Parse a variable type, ignoring case. Empty values mean Default."""
        if value is None or str(value).strip() == "":
            return cls.DEFAULT
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Unknown variable type {value!r}")


class RegulationType(Enum):
    ACTIVATOR = "Activator"
    INHIBITOR = "Inhibitor"

    @classmethod
    def from_str(cls, value):
        """
        Parse a relationship type.

        Accepts the names in any case and the numeric codes used by older
        BMA exports (1 for Activator, 2 for Inhibitor).
        """
        if value in (1, "1"):
            return cls.ACTIVATOR
        if value in (2, "2"):
            return cls.INHIBITOR
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise ValueError(f"Unknown relationship type {value!r}")


@dataclass
class Variable:
    id: object
    name: str
    range_from: int = 0
    range_to: int = 1
    formula: str = ""
    kind: Optional[VariableType] = VariableType.DEFAULT
    container_id: Optional[object] = None

    @property
    def bounds(self):
        return (self.range_from, self.range_to)

    @property
    def is_constant(self):
        return self.range_from == self.range_to

    def levels(self):
        return range(self.range_from, self.range_to + 1)

    def domain(self):
        """
        Every level the variable can hold, ascending.

        This is the declared range, except that a constant ``[c, c]`` can also
        be knocked out to 0.
        """
        if self.is_constant:
            return sorted({0, self.range_from})
        return list(self.levels())


@dataclass
class Container:
    id: object
    name: str = ""


@dataclass
class Regulation:
    source: object
    target: object
    sign: RegulationType = RegulationType.ACTIVATOR
    id: Optional[object] = None


@dataclass
class VariableLayout:
    position_x: float = 0.0
    position_y: float = 0.0
    angle: Optional[float] = 0.0
    cell_x: Optional[int] = None
    cell_y: Optional[int] = None
    description: Optional[str] = ""


@dataclass
class ContainerLayout:
    size: Optional[int] = 1
    position_x: float = 0.0
    position_y: float = 0.0


@dataclass
class Layout:
    """Positional metadata. Inert for analysis, kept for round-tripping."""

    variables: dict = field(default_factory=dict)
    containers: dict = field(default_factory=dict)
    description: Optional[str] = ""
    zoom_level: Optional[float] = None
    pan_x: Optional[float] = None
    pan_y: Optional[float] = None
    columns: Optional[int] = None
    rows: Optional[int] = None


class Model:
    """
    A BMA model: containers, variables and regulations in insertion order.

    The ``add_*`` methods refuse to break identifier uniqueness or to create
    references to unknown entities. The underlying lists stay public so that
    tools can inspect them; the Validator re-checks everything.

    Example:
        model = Model("toggle")
        model.add_variable(Variable(1, "A"))
        model.add_variable(Variable(2, "B", formula="var(A)"))
        model.add_regulation(Regulation(1, 2, RegulationType.ACTIVATOR))
    """

    def __init__(self, name="", layout=None, metadata=None):
        self.name = name
        self.containers = []
        self.variables = []
        self.regulations = []
        self.layout = layout
        self.metadata = dict(metadata or {})

    def __repr__(self):
        return (
            f"Model({self.name!r}, variables={len(self.variables)}, "
            f"regulations={len(self.regulations)}, containers={len(self.containers)})"
        )

    def add_container(self, container):
        if self.get_container(container.id) is not None:
            raise ModelError(f"Container id {container.id!r} is already used")
        self.containers.append(container)
        return container

    def add_variable(self, variable):
        if self.find_by_id(variable.id) is not None:
            raise ModelError(f"Variable id {variable.id!r} is already used")
        if variable.container_id is not None and self.get_container(variable.container_id) is None:
            raise ModelError(
                f"Variable {variable.id!r} refers to unknown container {variable.container_id!r}"
            )
        self.variables.append(variable)
        return variable

    def add_regulation(self, regulation):
        for endpoint in (regulation.source, regulation.target):
            if self.find_by_id(endpoint) is None:
                raise ModelError(f"Regulation refers to unknown variable {endpoint!r}")
        if regulation.id is not None:
            if any(existing.id == regulation.id for existing in self.regulations):
                raise ModelError(f"Relationship id {regulation.id!r} is already used")
        self.regulations.append(regulation)
        return regulation

    def find_by_id(self, var_id):
        for variable in self.variables:
            if variable.id == var_id:
                return variable
        return None

    def get_variable(self, var_id):
        variable = self.find_by_id(var_id)
        if variable is None:
            raise ModelError(f"Unknown variable {var_id!r}")
        return variable

    def find_variable(self, key):
        """Look a variable up by id first, then by unique name."""
        variable = self.find_by_id(key)
        if variable is not None:
            return variable
        matches = [variable for variable in self.variables if variable.name == key]
        if len(matches) == 1:
            return matches[0]
        return None

    def get_container(self, container_id):
        for container in self.containers:
            if container.id == container_id:
                return container
        return None

    def get_regulators(self, target):
        """
        Regulators of a variable, in model order.

        Returns:
            list: ``(source_id, RegulationType)`` pairs, one per distinct source.
                A source regulating with both signs keeps the first one.
        """
        signs = {}
        for regulation in self.regulations:
            if regulation.target == target and regulation.source not in signs:
                signs[regulation.source] = regulation.sign
        order = self.variable_ids()
        return sorted(signs.items(), key=lambda item: _position(order, item[0]))

    def get_targets(self, source):
        targets = []
        for regulation in self.regulations:
            if regulation.source == source and regulation.target not in targets:
                targets.append(regulation.target)
        return targets

    def variable_ids(self):
        return [variable.id for variable in self.variables]

    def variable_catalogue(self):
        """Mapping from variable id to name, used to resolve formula references."""
        return {variable.id: variable.name for variable in self.variables}

    def expression(self, var_id):
        """
        Parse the formula of a variable, or return None if it is empty.

        Raises:
            ParseError: The formula is not valid against this model
        """
        formula = self.get_variable(var_id).formula
        if formula is None or formula.strip() == "":
            return None
        return parse(formula, self.variable_catalogue())

    def set_formula(self, var_id, formula):
        self.get_variable(var_id).formula = formula

    def knockout_variable(self, var_id, formula="0"):
        """
        Knock out a variable by replacing its formula.

        Args:
            var_id: Id of the variable to knock out
            formula: Formula to set (default "0")
        """
        self.set_formula(var_id, formula)

    def same_structure(self, other):
        """
        Structural equality that ignores layout, metadata and relationship ids.

        Formulas compare by parsed tree when both sides parse, so
        ``var(A)`` and ``var(1)`` are equal when A has id 1.
        """
        if self.name != other.name:
            return False
        if [(c.id, c.name) for c in self.containers] != [(c.id, c.name) for c in other.containers]:
            return False
        if self.variable_ids() != other.variable_ids():
            return False
        for mine, theirs in zip(self.variables, other.variables):
            if (mine.name, mine.bounds, _kind(mine), mine.container_id) != (
                theirs.name,
                theirs.bounds,
                _kind(theirs),
                theirs.container_id,
            ):
                return False
            if not _same_formula(self, mine, other, theirs):
                return False
        mine = {(r.source, r.target, r.sign) for r in self.regulations}
        theirs = {(r.source, r.target, r.sign) for r in other.regulations}
        return mine == theirs


def _same_formula(model, variable, other_model, other_variable):
    try:
        return model.expression(variable.id) == other_model.expression(other_variable.id)
    except ParseError:
        return (variable.formula or "").strip() == (other_variable.formula or "").strip()


def _position(order, var_id):
    try:
        return order.index(var_id)
    except ValueError:
        return len(order)


def _kind(variable):
    return variable.kind or VariableType.DEFAULT
