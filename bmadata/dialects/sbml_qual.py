"""
SBML-qual import through libsbml
"""

import logging
from fractions import Fraction

import libsbml

from ..errors import MalformedModelError
from ..expression import format_number
from ..model import Layout, Model, Regulation, RegulationType, Variable, VariableLayout
from ._common import add

logger = logging.getLogger(__name__)

KEY = "sbml-qual"


def matches(root):
    tag = root.tag.split("}", 1)[1] if "}" in root.tag else root.tag
    return tag == "sbml"


def _fold(function, operands, empty):
    """Nest a binary BMA function over operands, e.g. ``min(min(a, b), c)``."""
    if not operands:
        return empty
    result = operands[0]
    for operand in operands[1:]:
        result = f"{function}({result}, {operand})"
    return result


def _children(ast, var_id_map):
    return [convert_math(ast.getChild(i), var_id_map) for i in range(ast.getNumChildren())]


def convert_math(ast, var_id_map):
    """
    Convert a libsbml MathML AST into an arithmetic BMA formula.

    Boolean conditions become 0/1 values so the result only uses operators
    BMA understands: and becomes min, or becomes max, not becomes ``1 - x``
    and relations become clamped differences.

    Args:
        ast: libsbml ASTNode
        var_id_map: Mapping from SBML species ids to BMA variable ids

    Returns:
        str: BMA formula
    """
    node_type = ast.getType()

    if node_type == libsbml.AST_INTEGER:
        return str(ast.getInteger())
    if node_type in (libsbml.AST_REAL, libsbml.AST_REAL_E):
        return format_number(Fraction(str(ast.getReal())))
    if node_type == libsbml.AST_RATIONAL:
        return f"({ast.getNumerator()} / {ast.getDenominator()})"
    if node_type == libsbml.AST_NAME:
        name = ast.getName()
        if name not in var_id_map:
            raise MalformedModelError(f"unknown qualitative species '{name}'", "transition.math")
        return f"var({var_id_map[name]})"
    if node_type == libsbml.AST_CONSTANT_TRUE:
        return "1"
    if node_type == libsbml.AST_CONSTANT_FALSE:
        return "0"

    operands = _children(ast, var_id_map)

    if node_type == libsbml.AST_LOGICAL_AND:
        return _fold("min", operands, "1")
    if node_type == libsbml.AST_LOGICAL_OR:
        return _fold("max", operands, "0")
    if node_type == libsbml.AST_LOGICAL_NOT:
        return f"(1 - {operands[0]})"

    if node_type in _RELATIONS:
        left, right = operands[0], operands[1]
        return _RELATIONS[node_type](left, right)

    if node_type == libsbml.AST_PLUS:
        return "(" + " + ".join(operands) + ")"
    if node_type == libsbml.AST_MINUS:
        if len(operands) == 1:
            return f"(0 - {operands[0]})"
        return f"({operands[0]} - {operands[1]})"
    if node_type == libsbml.AST_TIMES:
        return "(" + " * ".join(operands) + ")"
    if node_type == libsbml.AST_DIVIDE:
        return f"({operands[0]} / {operands[1]})"
    if node_type == libsbml.AST_FUNCTION_MIN:
        return _fold("min", operands, "0")
    if node_type == libsbml.AST_FUNCTION_MAX:
        return _fold("max", operands, "0")
    if node_type == libsbml.AST_FUNCTION_FLOOR:
        return f"floor({operands[0]})"
    if node_type == libsbml.AST_FUNCTION_CEILING:
        return f"ceil({operands[0]})"
    if node_type == libsbml.AST_FUNCTION_ABS:
        return f"abs({operands[0]})"
    if node_type == libsbml.AST_POWER:
        return _power(operands[0], ast.getChild(1))
    if node_type == libsbml.AST_FUNCTION_PIECEWISE:
        # value/condition pairs, then an optional otherwise value
        terms = [f"({operands[i + 1]} * {operands[i]})" for i in range(0, len(operands) - 1, 2)]
        if len(operands) % 2 == 1:
            terms.append(operands[-1])
        return _fold("max", terms, "0")

    raise MalformedModelError(f"unsupported MathML construct '{ast.getName() or node_type}'", "transition.math")


def _power(base, exponent_ast):
    if exponent_ast.getType() != libsbml.AST_INTEGER or exponent_ast.getInteger() < 0:
        raise MalformedModelError("only non-negative integer exponents are supported", "transition.math")
    exponent = exponent_ast.getInteger()
    if exponent == 0:
        return "1"
    return "(" + " * ".join([base] * exponent) + ")"


_RELATIONS = {
    libsbml.AST_RELATIONAL_EQ: lambda a, b: f"(1 - min(1, abs({a} - {b})))",
    libsbml.AST_RELATIONAL_NEQ: lambda a, b: f"min(1, abs({a} - {b}))",
    libsbml.AST_RELATIONAL_GT: lambda a, b: f"max(0, min(1, {a} - {b}))",
    libsbml.AST_RELATIONAL_GEQ: lambda a, b: f"max(0, min(1, ({a} - {b}) + 1))",
    libsbml.AST_RELATIONAL_LT: lambda a, b: f"max(0, min(1, {b} - {a}))",
    libsbml.AST_RELATIONAL_LEQ: lambda a, b: f"max(0, min(1, ({b} - {a}) + 1))",
}


def transition_formula(transition, var_id_map):
    """
    Build a BMA formula from the function terms of a transition.

    Every term contributes ``condition * resultLevel``; terms are combined
    with max and a non-zero default level is added as a floor.

    Returns:
        str: The formula, or None when the transition defines no terms
    """
    default_level = None
    if transition.isSetDefaultTerm():
        default_level = transition.getDefaultTerm().getResultLevel()

    terms = []
    for i in range(transition.getNumFunctionTerms()):
        term = transition.getFunctionTerm(i)
        math = term.getMath()
        if math is not None:
            terms.append(f"({convert_math(math, var_id_map)} * {term.getResultLevel()})")

    if not terms:
        return None if default_level is None else str(default_level)
    if default_level:
        terms.append(str(default_level))
    return _fold("max", terms, "0")


def _document_errors(document):
    errors = []
    for i in range(document.getNumErrors()):
        error = document.getError(i)
        if error.isFatal() or error.isError():
            errors.append(f"Line {error.getLine()}: {error.getMessage()}")
    return errors


def decode(text):
    """
    Build a Model from an SBML-qual document.

    Qualitative species become variables ``[0, maxLevel]`` numbered in
    document order. Transition inputs become relationships (negative sign
    gives an Inhibitor, anything else an Activator) and function terms
    become arithmetic formulas.

    Args:
        text: The SBML document

    Returns:
        Model: The decoded model

    Example:
        model = decode(open("model.sbml").read())
    """
    document = libsbml.readSBMLFromString(text)
    errors = _document_errors(document)
    if errors:
        raise MalformedModelError("SBML parsing errors:\n" + "\n".join(errors), "$")

    sbml_model = document.getModel()
    if sbml_model is None:
        raise MalformedModelError("no model found in SBML document", "$")
    qual = sbml_model.getPlugin("qual")
    if qual is None:
        raise MalformedModelError("document does not use the qual extension", "$")

    layout = Layout()
    model = Model(sbml_model.getName() or sbml_model.getId() or "Imported SBML Model", layout=layout)
    var_id_map = {}
    for i in range(qual.getNumQualitativeSpecies()):
        species = qual.getQualitativeSpecies(i)
        sbml_id = species.getId()
        var_id_map[sbml_id] = i
        max_level = species.getMaxLevel() if species.isSetMaxLevel() else 1
        variable = Variable(i, species.getName() or sbml_id, 0, max_level)
        add(model, "add_variable", variable, f"qualitativeSpecies[{i}]")

    _read_layout(sbml_model, var_id_map, layout)

    for i in range(qual.getNumTransitions()):
        transition = qual.getTransition(i)
        location = f"transition[{i}]"
        if transition.getNumOutputs() == 0:
            logger.warning(f"Transition {transition.getId()} has no output and is skipped")
            continue
        target_species = transition.getOutput(0).getQualitativeSpecies()
        if target_species not in var_id_map:
            raise MalformedModelError(f"unknown output species '{target_species}'", location)
        target = var_id_map[target_species]

        for j in range(transition.getNumInputs()):
            item = transition.getInput(j)
            source_species = item.getQualitativeSpecies()
            if source_species not in var_id_map:
                raise MalformedModelError(f"unknown input species '{source_species}'", f"{location}.input[{j}]")
            sign = RegulationType.ACTIVATOR
            if item.getSign() == libsbml.INPUT_SIGN_NEGATIVE:
                sign = RegulationType.INHIBITOR
            regulation = Regulation(var_id_map[source_species], target, sign, id=len(model.regulations))
            add(model, "add_regulation", regulation, f"{location}.input[{j}]")

        formula = transition_formula(transition, var_id_map)
        if formula is not None:
            model.set_formula(target, formula)

    logger.debug(
        f"Decoded {KEY} model '{model.name}' with {len(model.variables)} variables "
        f"and {len(model.regulations)} relationships"
    )
    return model


def _read_layout(sbml_model, var_id_map, layout):
    plugin = sbml_model.getPlugin("layout")
    if plugin is None or plugin.getNumLayouts() == 0:
        return
    sbml_layout = plugin.getLayout(0)
    for i in range(sbml_layout.getNumGeneralGlyphs()):
        glyph = sbml_layout.getGeneralGlyph(i)
        reference = glyph.getReferenceId()
        box = glyph.getBoundingBox()
        if reference in var_id_map and box is not None:
            layout.variables[var_id_map[reference]] = VariableLayout(position_x=box.getX(), position_y=box.getY())
