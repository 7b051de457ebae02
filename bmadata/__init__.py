"""
bmadata - BioModelAnalyzer models: dialects, validation and Boolean networks
"""

__version__ = "0.2.0"

from .config import DEFAULT_POLICY, Policy
from .core import BMAModel, load_model, save_model
from .dialects import decode, encode, sniff
from .errors import (
    BMAError,
    BuildError,
    DecodeError,
    DivisionByZeroError,
    EvalError,
    MalformedModelError,
    ModelError,
    ParseError,
    TypeMismatchError,
    UnboundVariableError,
    UnknownVariableError,
    UnrecognizedFormatError,
)
from .expression import evaluate, normalize
from .model import Container, Layout, Model, Regulation, RegulationType, Variable, VariableType
from .network import BooleanNetworkArtifact, build
from .parser import parse
from .semantics import default_update_expression, evaluate_variable, function_table, populate_default_functions
from .utilities import bits_to_variable_dict, model_to_variable_id_dict
from .validation import Issue, IssueKind, Severity, ValidationReport, validate

__all__ = [
    'BMAModel',
    'load_model',
    'save_model',
    'decode',
    'encode',
    'sniff',
    'parse',
    'evaluate',
    'normalize',
    'validate',
    'build',
    'Model',
    'Variable',
    'VariableType',
    'Container',
    'Regulation',
    'RegulationType',
    'Layout',
    'Policy',
    'DEFAULT_POLICY',
    'Issue',
    'IssueKind',
    'Severity',
    'ValidationReport',
    'BooleanNetworkArtifact',
    'default_update_expression',
    'evaluate_variable',
    'function_table',
    'populate_default_functions',
    'model_to_variable_id_dict',
    'bits_to_variable_dict',
    'BMAError',
    'BuildError',
    'DecodeError',
    'DivisionByZeroError',
    'EvalError',
    'MalformedModelError',
    'ModelError',
    'ParseError',
    'TypeMismatchError',
    'UnboundVariableError',
    'UnknownVariableError',
    'UnrecognizedFormatError',
]
