"""
Legacy BMA JSON with granularity ranges, implicit containers and unsigned relationships
"""

import logging

from ..errors import ParseError
from ..model import Container, Model, Regulation, RegulationType, Variable
from ..semantics import scan_monotonicity
from ._common import add, as_int, as_identifier, as_regulation_type, as_text, pick, require_list, require_object
from .json_bma import model_section, read_layout, relationship_endpoints, relationship_id, variable_name

logger = logging.getLogger(__name__)

KEY = "json-legacy"

CONTAINER_SEPARATOR = "::"


def matches(document):
    if not isinstance(document, dict):
        return False
    network = model_section(document)
    if not isinstance(network, dict):
        return False
    variables = pick(network, "Variables", "variables")
    if not isinstance(variables, list):
        return False
    return any(isinstance(v, dict) and ("Granularity" in v or "granularity" in v) for v in variables)


def split_container(name):
    """
    Split ``"Cell::Name"`` into ``("Cell", "Name")``.

    Names without a prefix return ``(None, name)``.
    """
    if CONTAINER_SEPARATOR not in name:
        return None, name
    prefix, _, rest = name.partition(CONTAINER_SEPARATOR)
    if not prefix or not rest:
        return None, name
    return prefix, rest


def variable_range(data, location):
    """Read ``Granularity`` as the range ``[0, g]``, or explicit bounds when given."""
    granularity = pick(data, "Granularity", "granularity")
    if granularity is not None:
        return 0, as_int(granularity, f"{location}.Granularity")
    return (
        as_int(pick(data, "RangeFrom", "rangeFrom"), f"{location}.RangeFrom"),
        as_int(pick(data, "RangeTo", "rangeTo"), f"{location}.RangeTo"),
    )


def infer_sign(model, source, target):
    """
    Guess a relationship sign from the target's update function.

    Inhibitor when varying the source only ever lowers the target,
    Activator otherwise (including unparsable or empty formulas).
    """
    try:
        scan = scan_monotonicity(model, source, target)
    except ParseError as e:
        logger.warning(f"Cannot infer sign of {source} -> {target}: {e}")
        return RegulationType.ACTIVATOR
    if scan.observed_sign == RegulationType.INHIBITOR:
        return RegulationType.INHIBITOR
    return RegulationType.ACTIVATOR


def decode(document):
    """
    Build a Model from a legacy granularity export.

    Args:
        document: Parsed JSON object with a ``Model`` section whose variables
            carry ``Granularity``

    Returns:
        Model: The decoded model
    """
    network = require_object(model_section(document), "Model")
    layout, entries, containers = read_layout(document)
    model = Model(as_text(pick(network, "Name", "name")), layout=layout)
    for i, container in enumerate(containers):
        add(model, "add_container", container, f"Layout.Containers[{i}]")
    inferred = {}

    for i, data in enumerate(require_list(pick(network, "Variables", "variables"), "Model.Variables")):
        location = f"Model.Variables[{i}]"
        require_object(data, location)
        var_id = as_identifier(pick(data, "Id", "id"), f"{location}.Id")
        prefix, name = split_container(variable_name(data, entries.get(var_id)))
        container_id = None
        if prefix is not None:
            container_id = inferred.get(prefix)
            if container_id is None:
                container_id = _container_for(model, prefix)
                inferred[prefix] = container_id
                logger.warning(f"Variable {var_id} placed in container '{prefix}' inferred from its name")
        range_from, range_to = variable_range(data, location)
        variable = Variable(
            id=var_id,
            name=name,
            range_from=range_from,
            range_to=range_to,
            formula=as_text(pick(data, "Formula", "formula", "Function", "function")),
            container_id=container_id,
        )
        add(model, "add_variable", variable, location)

    unsigned = []
    relationships = require_list(pick(network, "Relationships", "relationships"), "Model.Relationships")
    for i, data in enumerate(relationships):
        location = f"Model.Relationships[{i}]"
        require_object(data, location)
        source, target = relationship_endpoints(data, location)
        sign = pick(data, "Type", "type")
        regulation = Regulation(
            source=source,
            target=target,
            sign=RegulationType.ACTIVATOR if sign is None else as_regulation_type(sign, f"{location}.Type"),
            id=relationship_id(data, location),
        )
        add(model, "add_regulation", regulation, location)
        if sign is None:
            unsigned.append(regulation)

    # Signs are inferred once every variable and edge is known.
    for regulation in unsigned:
        regulation.sign = infer_sign(model, regulation.source, regulation.target)
        logger.warning(
            f"Relationship {regulation.source} -> {regulation.target} has no type, "
            f"inferred {regulation.sign.value}"
        )

    logger.debug(
        f"Decoded {KEY} model '{model.name}' with {len(model.variables)} variables "
        f"and {len(model.regulations)} relationships"
    )
    return model


def _container_for(model, name):
    for container in model.containers:
        if container.name == name:
            return container.id
    numeric = [c.id for c in model.containers if isinstance(c.id, int)]
    container_id = max(numeric, default=0) + 1
    model.add_container(Container(container_id, name))
    return container_id
