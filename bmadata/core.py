"""
Core bmadata functionality - model loading, saving and the BMAModel wrapper
"""

import copy
from pathlib import Path

from .config import DEFAULT_POLICY
from .dialects import decode, encode
from .network import build
from .validation import validate


def load_model(path, format_hint=None):
    """
    Load a BMA model from a file in any supported dialect.

    Args:
        path: Path to a BMA JSON, BMA XML or SBML-qual file
        format_hint: Optional dialect key or family; defaults to the file suffix

    Returns:
        Model: The canonical model
    """
    path = Path(path)
    if format_hint is None and path.suffix:
        format_hint = path.suffix
    return decode(path.read_bytes(), format_hint)


def save_model(model, path):
    """Write a model in the newest BMA JSON format."""
    Path(path).write_bytes(encode(model))


class BMAModel:
    """
    Wrapper class for BMA models providing a Pythonic interface.

    The validation report and the Boolean network are computed on first use
    and cached until the model is changed through the wrapper.
    """

    def __init__(self, path=None, model=None, policy=None):
        """
        Initialize from a model file or an existing Model.

        Args:
            path: Path to a model file
            model: Model instance, takes precedence over ``path``
            policy: Policy used for validation and building
        """
        self.path = path
        if model is not None:
            self.model = model
        elif path is not None:
            self.model = load_model(path)
        else:
            raise ValueError("No model or model path given")
        self.policy = policy or DEFAULT_POLICY
        self._report = None
        self._network = None

    def __deepcopy__(self, memo):
        """Create a deep copy of the BMAModel, recomputing caches lazily."""
        return BMAModel(model=copy.deepcopy(self.model, memo), policy=self.policy)

    @property
    def report(self):
        """Validation report of the current model"""
        if self._report is None:
            self._report = validate(self.model, self.policy)
        return self._report

    @property
    def network(self):
        """Get or build the Boolean network of the model"""
        if self._network is None:
            self._network = build(self.model, self.policy)
        return self._network

    def refresh_network(self):
        """Force regeneration of the report and network from the current model"""
        self._report = None
        self._network = build(self.model, self.policy)
        return self._network

    def knockout_variable(self, variable_id, formula="0"):
        """
        Knock out a variable by setting its formula.

        Args:
            variable_id: Id of variable to knock out
            formula: Formula to set (default "0")
        """
        self.model.knockout_variable(variable_id, formula)
        self._report = None
        self._network = None

    def get_variable(self, variable_id):
        """Get variable by id"""
        return self.model.get_variable(variable_id)

    def get_variables(self):
        """Get all variables"""
        return list(self.model.variables)

    @property
    def name(self):
        """Get model name"""
        return self.model.name

    def save(self, path=None):
        """Save the model in the newest JSON format, by default over the original path"""
        target = path or self.path
        if target is None:
            raise ValueError("No path given")
        save_model(self.model, target)
