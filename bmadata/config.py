"""
Analysis policy shared by validation and network building
"""

import os
from dataclasses import dataclass, replace

DEFAULT_MAX_ASSIGNMENTS = 65536

EMPTY_FORMULA_IDENTITY = "identity"
EMPTY_FORMULA_DEFAULT = "default"


@dataclass(frozen=True)
class Policy:
    """
    Tunable decisions of the evaluation pipeline.

    Args:
        max_assignments: Largest number of input assignments enumerated per
            expression check. Larger input spaces are checked up to this many
            assignments and reported as truncated.
        rescale_inputs: Apply BMA's input range rescaling before evaluating
            an update function.
        empty_formula: ``"identity"`` keeps the variable at its current level,
            ``"default"`` uses ``avg(activators) - avg(inhibitors)``.
        stepwise: Constrain thermometer bits so a variable moves one level
            per update.
    """

    max_assignments: int = DEFAULT_MAX_ASSIGNMENTS
    rescale_inputs: bool = False
    empty_formula: str = EMPTY_FORMULA_IDENTITY
    stepwise: bool = False

    def __post_init__(self):
        if self.max_assignments < 1:
            raise ValueError("max_assignments must be positive")
        if self.empty_formula not in (EMPTY_FORMULA_IDENTITY, EMPTY_FORMULA_DEFAULT):
            raise ValueError(f"Unknown empty_formula policy {self.empty_formula!r}")

    @classmethod
    def from_env(cls, environ=None):
        """
        Build a policy from ``BMADATA_*`` environment variables.

        Example:
            BMADATA_MAX_ASSIGNMENTS=1000 BMADATA_RESCALE_INPUTS=1
        """
        environ = os.environ if environ is None else environ
        return cls(
            max_assignments=int(environ.get("BMADATA_MAX_ASSIGNMENTS", DEFAULT_MAX_ASSIGNMENTS)),
            rescale_inputs=_flag(environ.get("BMADATA_RESCALE_INPUTS")),
            empty_formula=environ.get("BMADATA_EMPTY_FORMULA", EMPTY_FORMULA_IDENTITY),
            stepwise=_flag(environ.get("BMADATA_STEPWISE")),
        )

    def with_changes(self, **changes):
        return replace(self, **changes)


def _flag(value):
    return str(value).strip().lower() in ("1", "true", "yes", "on")


DEFAULT_POLICY = Policy.from_env()
