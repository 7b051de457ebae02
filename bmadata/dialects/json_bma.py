"""
BMA tool JSON export with separate ``Model`` and ``Layout`` sections
"""

import logging

from ..model import Container, ContainerLayout, Layout, Model, Regulation, Variable, VariableLayout
from ._common import (
    add,
    as_float,
    as_identifier,
    as_int,
    as_optional_int,
    as_regulation_type,
    as_text,
    as_variable_type,
    pick,
    require_list,
    require_object,
)

logger = logging.getLogger(__name__)

KEY = "json-model-layout"


def model_section(document):
    return pick(document, "Model", "model")


def layout_section(document):
    return pick(document, "Layout", "layout")


def matches(document):
    return isinstance(document, dict) and isinstance(model_section(document), dict)


def read_layout(document):
    """
    Read the ``Layout`` section.

    Returns:
        tuple: ``(layout, layout_variables, containers)`` where
            ``layout_variables`` maps a variable id to its raw layout entry and
            ``containers`` lists ``Container`` objects in document order.
            ``layout`` is None when the section is absent.
    """
    data = layout_section(document)
    if data is None:
        return None, {}, []
    require_object(data, "Layout")
    layout = Layout(
        description=as_text(pick(data, "Description", "description")),
        zoom_level=as_float(pick(data, "ZoomLevel", "zoomLevel"), "Layout.ZoomLevel"),
        pan_x=as_float(pick(data, "PanX", "panX"), "Layout.PanX"),
        pan_y=as_float(pick(data, "PanY", "panY"), "Layout.PanY"),
    )
    entries = {}
    for i, entry in enumerate(require_list(pick(data, "Variables", "variables"), "Layout.Variables")):
        location = f"Layout.Variables[{i}]"
        require_object(entry, location)
        var_id = as_identifier(pick(entry, "Id", "id"), f"{location}.Id")
        entries[var_id] = entry
        layout.variables[var_id] = VariableLayout(
            position_x=as_float(pick(entry, "PositionX", "positionX"), location, 0.0),
            position_y=as_float(pick(entry, "PositionY", "positionY"), location, 0.0),
            angle=as_float(pick(entry, "Angle", "angle"), location, 0.0),
            cell_x=as_optional_int(pick(entry, "CellX", "cellX"), f"{location}.CellX"),
            cell_y=as_optional_int(pick(entry, "CellY", "cellY"), f"{location}.CellY"),
            description=as_text(pick(entry, "Description", "description")),
        )
    containers = []
    for i, entry in enumerate(require_list(pick(data, "Containers", "containers"), "Layout.Containers")):
        location = f"Layout.Containers[{i}]"
        require_object(entry, location)
        container_id = as_identifier(pick(entry, "Id", "id"), f"{location}.Id")
        containers.append(Container(container_id, as_text(pick(entry, "Name", "name"))))
        layout.containers[container_id] = ContainerLayout(
            size=as_int(pick(entry, "Size", "size", default=1), f"{location}.Size"),
            position_x=as_float(pick(entry, "PositionX", "positionX"), location, 0.0),
            position_y=as_float(pick(entry, "PositionY", "positionY"), location, 0.0),
        )
    return layout, entries, containers


def variable_name(data, layout_entry):
    """Names come from the model variable, falling back to the layout variable."""
    name = as_text(pick(data, "Name", "name"))
    if not name and layout_entry is not None:
        name = as_text(pick(layout_entry, "Name", "name"))
    return name


def relationship_endpoints(data, location):
    source = pick(data, "FromVariable", "fromVariable", "FromVariableId", "fromVariableId")
    target = pick(data, "ToVariable", "toVariable", "ToVariableId", "toVariableId")
    return (
        as_identifier(source, f"{location}.FromVariable"),
        as_identifier(target, f"{location}.ToVariable"),
    )


def relationship_id(data, location):
    value = pick(data, "Id", "id")
    return None if value is None else as_identifier(value, f"{location}.Id")


def decode(document):
    """
    Build a Model from a BMA tool export.

    Args:
        document: Parsed JSON object with ``Model`` and optional ``Layout``

    Returns:
        Model: The decoded model
    """
    network = require_object(model_section(document), "Model")
    layout, entries, containers = read_layout(document)
    model = Model(as_text(pick(network, "Name", "name")), layout=layout)
    for i, container in enumerate(containers):
        add(model, "add_container", container, f"Layout.Containers[{i}]")

    for i, data in enumerate(require_list(pick(network, "Variables", "variables"), "Model.Variables")):
        location = f"Model.Variables[{i}]"
        require_object(data, location)
        var_id = as_identifier(pick(data, "Id", "id"), f"{location}.Id")
        entry = entries.get(var_id)
        container_id = None
        kind = None
        if entry is not None:
            container_id = pick(entry, "ContainerId", "containerId")
            kind = pick(entry, "Type", "type")
        variable = Variable(
            id=var_id,
            name=variable_name(data, entry),
            range_from=as_int(pick(data, "RangeFrom", "rangeFrom"), f"{location}.RangeFrom"),
            range_to=as_int(pick(data, "RangeTo", "rangeTo"), f"{location}.RangeTo"),
            formula=as_text(pick(data, "Formula", "formula")),
            kind=as_variable_type(kind, f"Layout.Variables[{var_id}].Type"),
            container_id=None if container_id is None else as_identifier(container_id, location),
        )
        add(model, "add_variable", variable, location)

    relationships = require_list(pick(network, "Relationships", "relationships"), "Model.Relationships")
    for i, data in enumerate(relationships):
        location = f"Model.Relationships[{i}]"
        require_object(data, location)
        source, target = relationship_endpoints(data, location)
        regulation = Regulation(
            source=source,
            target=target,
            sign=as_regulation_type(pick(data, "Type", "type"), f"{location}.Type"),
            id=relationship_id(data, location),
        )
        add(model, "add_regulation", regulation, location)

    logger.debug(
        f"Decoded {KEY} model '{model.name}' with {len(model.variables)} variables "
        f"and {len(model.regulations)} relationships"
    )
    return model
