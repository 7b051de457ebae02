"""
Newest BMA JSON export: the only dialect bmadata writes
"""

import logging

from ..model import (
    Container,
    ContainerLayout,
    Layout,
    Model,
    Regulation,
    Variable,
    VariableLayout,
)
from ._common import (
    add,
    as_identifier,
    as_int,
    as_number,
    as_optional_int,
    as_regulation_type,
    as_text,
    as_variable_type,
    require_list,
    require_object,
)

logger = logging.getLogger(__name__)

KEY = "json-current"


def matches(document):
    return (
        isinstance(document, dict)
        and "variables" in document
        and "Model" not in document
        and "model" not in document
    )


def decode(document):
    """
    Build a Model from a parsed newest-format document.

    Args:
        document: Parsed JSON object

    Returns:
        Model: The decoded model

    Raises:
        MalformedModelError: A field is missing or has the wrong type
    """
    require_object(document, "$")
    metadata = document.get("metadata")
    if metadata is not None:
        require_object(metadata, "metadata")
    model = Model(as_text(document.get("name")), metadata=metadata)

    for i, data in enumerate(require_list(document.get("containers"), "containers")):
        location = f"containers[{i}]"
        require_object(data, location)
        container = Container(
            as_identifier(data.get("id"), f"{location}.id", quoted=False),
            as_text(data.get("name")),
        )
        add(model, "add_container", container, location)

    for i, data in enumerate(require_list(document.get("variables"), "variables")):
        location = f"variables[{i}]"
        require_object(data, location)
        container_id = data.get("containerId")
        variable = Variable(
            id=as_identifier(data.get("id"), f"{location}.id", quoted=False),
            name=as_text(data.get("name")),
            range_from=as_int(data.get("rangeFrom"), f"{location}.rangeFrom", quoted=False),
            range_to=as_int(data.get("rangeTo"), f"{location}.rangeTo", quoted=False),
            formula=as_text(data.get("formula")),
            kind=None if data.get("type") is None else as_variable_type(data["type"], f"{location}.type"),
            container_id=(
                None
                if container_id is None
                else as_identifier(container_id, f"{location}.containerId", quoted=False)
            ),
        )
        add(model, "add_variable", variable, location)

    for i, data in enumerate(require_list(document.get("relationships"), "relationships")):
        location = f"relationships[{i}]"
        require_object(data, location)
        regulation_id = data.get("id")
        regulation = Regulation(
            source=as_identifier(data.get("fromVariable"), f"{location}.fromVariable", quoted=False),
            target=as_identifier(data.get("toVariable"), f"{location}.toVariable", quoted=False),
            sign=as_regulation_type(data.get("type"), f"{location}.type"),
            id=None if regulation_id is None else as_identifier(regulation_id, f"{location}.id", quoted=False),
        )
        add(model, "add_regulation", regulation, location)

    if document.get("layout") is not None:
        model.layout = _decode_layout(require_object(document["layout"], "layout"))

    logger.debug(
        f"Decoded {KEY} model '{model.name}' with {len(model.variables)} variables "
        f"and {len(model.regulations)} relationships"
    )
    return model


def _decode_layout(data):
    layout = Layout(
        description=as_text(data.get("description"), None),
        zoom_level=as_number(data.get("zoomLevel"), "layout.zoomLevel"),
        pan_x=as_number(data.get("panX"), "layout.panX"),
        pan_y=as_number(data.get("panY"), "layout.panY"),
        columns=as_optional_int(data.get("columns"), "layout.columns"),
        rows=as_optional_int(data.get("rows"), "layout.rows"),
    )
    for i, entry in enumerate(require_list(data.get("variables"), "layout.variables")):
        location = f"layout.variables[{i}]"
        require_object(entry, location)
        var_id = as_identifier(entry.get("id"), f"{location}.id", quoted=False)
        layout.variables[var_id] = VariableLayout(
            position_x=as_number(entry.get("positionX"), location, 0.0),
            position_y=as_number(entry.get("positionY"), location, 0.0),
            angle=as_number(entry.get("angle"), location),
            cell_x=as_optional_int(entry.get("cellX"), f"{location}.cellX"),
            cell_y=as_optional_int(entry.get("cellY"), f"{location}.cellY"),
            description=as_text(entry.get("description"), None),
        )
    for i, entry in enumerate(require_list(data.get("containers"), "layout.containers")):
        location = f"layout.containers[{i}]"
        require_object(entry, location)
        container_id = as_identifier(entry.get("id"), f"{location}.id", quoted=False)
        layout.containers[container_id] = ContainerLayout(
            size=as_optional_int(entry.get("size"), f"{location}.size"),
            position_x=as_number(entry.get("positionX"), location, 0.0),
            position_y=as_number(entry.get("positionY"), location, 0.0),
        )
    return layout


def encode(model):
    """
    Convert a Model into a newest-format JSON object.

    Optional fields left unset (``None``) are not written, so a decoded
    document encodes back to the fields it was read from.

    Returns:
        dict: Ready for ``json.dumps``
    """
    document = {"name": model.name}
    if model.containers:
        document["containers"] = [{"id": c.id, "name": c.name} for c in model.containers]

    variables = []
    for variable in model.variables:
        data = {
            "id": variable.id,
            "name": variable.name,
            "rangeFrom": variable.range_from,
            "rangeTo": variable.range_to,
            "formula": variable.formula or "",
        }
        if variable.kind is not None:
            data["type"] = variable.kind.value
        if variable.container_id is not None:
            data["containerId"] = variable.container_id
        variables.append(data)
    document["variables"] = variables

    relationships = []
    for regulation in model.regulations:
        data = {}
        if regulation.id is not None:
            data["id"] = regulation.id
        data["fromVariable"] = regulation.source
        data["toVariable"] = regulation.target
        data["type"] = regulation.sign.value
        relationships.append(data)
    document["relationships"] = relationships

    if model.layout is not None:
        document["layout"] = _encode_layout(model.layout)
    if model.metadata:
        document["metadata"] = dict(model.metadata)
    return document


def _optional(data, key, value):
    if value is not None:
        data[key] = value


def _encode_layout(layout):
    data = {}
    for key, value in (
        ("description", layout.description),
        ("zoomLevel", layout.zoom_level),
        ("panX", layout.pan_x),
        ("panY", layout.pan_y),
        ("columns", layout.columns),
        ("rows", layout.rows),
    ):
        _optional(data, key, value)

    if layout.variables:
        variables = []
        for var_id, entry in layout.variables.items():
            item = {"id": var_id, "positionX": entry.position_x, "positionY": entry.position_y}
            _optional(item, "angle", entry.angle)
            _optional(item, "description", entry.description)
            _optional(item, "cellX", entry.cell_x)
            _optional(item, "cellY", entry.cell_y)
            variables.append(item)
        data["variables"] = variables
    if layout.containers:
        containers = []
        for container_id, entry in layout.containers.items():
            item = {"id": container_id}
            _optional(item, "size", entry.size)
            item["positionX"] = entry.position_x
            item["positionY"] = entry.position_y
            containers.append(item)
        data["containers"] = containers
    return data
