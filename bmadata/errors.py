"""
Exception types raised across bmadata
"""


class BMAError(Exception):
    """Base class for every error raised by bmadata."""


class ModelError(BMAError, ValueError):
    """A model constructor was asked to break a uniqueness or reference invariant."""


class DecodeError(BMAError, ValueError):
    """
    A raw document could not be turned into a Model.

    Args:
        reason: Human readable explanation
        location: Optional path into the document, e.g. ``variables[2].id``
    """

    def __init__(self, reason, location=None):
        self.reason = reason
        self.location = location
        if location:
            super().__init__(f"{location}: {reason}")
        else:
            super().__init__(reason)


class MalformedModelError(DecodeError):
    """The document was recognised but cannot be mapped structurally."""


class UnrecognizedFormatError(DecodeError):
    """No dialect adapter claims the document."""


class ParseError(BMAError, ValueError):
    """
    An update function could not be parsed.

    Args:
        message: Diagnostic text
        position: Character offset into the formula where the problem starts
    """

    def __init__(self, message, position=0):
        self.message = message
        self.position = position
        super().__init__(f"{message} (at position {position})")


class UnknownVariableError(ParseError):
    """A ``var(...)`` reference names no variable of the model."""


class TypeMismatchError(ParseError):
    """A Boolean value was used where a number is expected, or the reverse."""


class EvalError(BMAError, ArithmeticError):
    """An expression could not be evaluated for a given assignment."""


class DivisionByZeroError(EvalError):
    def __init__(self, assignment=None):
        self.assignment = dict(assignment or {})
        super().__init__(f"Division by zero for assignment {self.assignment}")


class UnboundVariableError(EvalError):
    def __init__(self, variable):
        self.variable = variable
        super().__init__(f"No value assigned to variable {variable!r}")


class BuildError(BMAError):
    """
    The Boolean network could not be built.

    Args:
        message: What went wrong
        issues: Blocking validation issues, if the build was refused
    """

    def __init__(self, message, issues=()):
        self.issues = list(issues)
        super().__init__(message)
