"""
BMA XML dialects: the modern ``<Model>`` document and the legacy ``<AnalysisInput>``
"""

import logging

from ..errors import MalformedModelError
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
)

logger = logging.getLogger(__name__)

MODEL_KEY = "xml-model"
ANALYSIS_INPUT_KEY = "xml-analysis-input"

METADATA_FIELDS = ("BioCheckVersion", "CreatedDate", "ModifiedDate")


def local_name(tag):
    return tag.split("}", 1)[1] if "}" in tag else tag


def child(element, name):
    for item in element:
        if local_name(item.tag) == name:
            return item
    return None


def children(element, name):
    return [item for item in element if local_name(item.tag) == name]


def field(element, *names):
    """
    Read a value stored either as an attribute or as a child element.

    BMA writes ``Id`` and ``Name`` as attributes in some versions and as
    child elements in others.
    """
    for name in names:
        if name in element.attrib:
            return element.attrib[name]
        item = child(element, name)
        if item is not None:
            return (item.text or "").strip()
    return None


def matches_model(root):
    return local_name(root.tag) == "Model"


def matches_analysis_input(root):
    return local_name(root.tag) == "AnalysisInput"


def read_variable(element, location, container_id=None):
    """
    Build a Variable and its layout entry from a ``<Variable>`` element.

    Args:
        element: The ``<Variable>`` element
        location: Path used in error messages
        container_id: Membership implied by nesting, overridden by an
            explicit ``ContainerId`` field
    """
    explicit_container = field(element, "ContainerId")
    if explicit_container not in (None, ""):
        container_id = as_identifier(explicit_container, f"{location}.ContainerId")
    variable = Variable(
        id=as_identifier(field(element, "Id"), f"{location}.Id"),
        name=as_text(field(element, "Name")),
        range_from=as_int(field(element, "RangeFrom"), f"{location}.RangeFrom"),
        range_to=as_int(field(element, "RangeTo"), f"{location}.RangeTo"),
        formula=as_text(field(element, "Formula", "Function")),
        kind=as_variable_type(field(element, "Type"), f"{location}.Type"),
        container_id=container_id,
    )
    entry = VariableLayout(
        position_x=as_float(field(element, "PositionX"), location, 0.0),
        position_y=as_float(field(element, "PositionY"), location, 0.0),
        angle=as_float(field(element, "Angle"), location, 0.0),
        cell_x=as_optional_int(field(element, "CellX"), f"{location}.CellX"),
        cell_y=as_optional_int(field(element, "CellY"), f"{location}.CellY"),
    )
    return variable, entry


def read_relationship(element, location):
    regulation_id = field(element, "Id")
    return Regulation(
        source=as_identifier(field(element, "FromVariableId", "FromVariable"), f"{location}.FromVariableId"),
        target=as_identifier(field(element, "ToVariableId", "ToVariable"), f"{location}.ToVariableId"),
        sign=as_regulation_type(field(element, "Type"), f"{location}.Type"),
        id=None if regulation_id in (None, "") else as_identifier(regulation_id, f"{location}.Id"),
    )


def read_container(element, location):
    container = Container(
        as_identifier(field(element, "Id"), f"{location}.Id"),
        as_text(field(element, "Name")),
    )
    geometry = ContainerLayout(
        size=as_int(field(element, "Size") or 1, f"{location}.Size"),
        position_x=as_float(field(element, "PositionX"), location, 0.0),
        position_y=as_float(field(element, "PositionY"), location, 0.0),
    )
    return container, geometry


def _read_metadata(root):
    metadata = {}
    for name in METADATA_FIELDS:
        value = field(root, name)
        if value:
            metadata[name] = value
    return metadata


def _read_relationships(model, root):
    relationships = child(root, "Relationships")
    if relationships is None:
        return
    for i, element in enumerate(children(relationships, "Relationship")):
        location = f"Relationships[{i}]"
        add(model, "add_regulation", read_relationship(element, location), location)


def decode_model(root):
    """
    Build a Model from a modern ``<Model>`` XML document.

    Args:
        root: Root element of the parsed document

    Returns:
        Model: The decoded model
    """
    if not matches_model(root):
        raise MalformedModelError(f"expected <Model>, found <{local_name(root.tag)}>", "$")
    layout = Layout(description=as_text(field(root, "Description")))
    settings = child(root, "Layout")
    if settings is not None:
        layout.columns = as_optional_int(field(settings, "Columns"), "Layout.Columns")
        layout.rows = as_optional_int(field(settings, "Rows"), "Layout.Rows")
        layout.zoom_level = as_float(field(settings, "ZoomLevel"), "Layout.ZoomLevel")
        layout.pan_x = as_float(field(settings, "PanX"), "Layout.PanX")
        layout.pan_y = as_float(field(settings, "PanY"), "Layout.PanY")
    model = Model(as_text(field(root, "Name", "ModelName")), layout=layout, metadata=_read_metadata(root))

    containers = child(root, "Containers")
    if containers is not None:
        for i, element in enumerate(children(containers, "Container")):
            location = f"Containers[{i}]"
            container, geometry = read_container(element, location)
            add(model, "add_container", container, location)
            layout.containers[container.id] = geometry

    variables = child(root, "Variables")
    if variables is not None:
        for i, element in enumerate(children(variables, "Variable")):
            location = f"Variables[{i}]"
            variable, entry = read_variable(element, location)
            add(model, "add_variable", variable, location)
            layout.variables[variable.id] = entry

    _read_relationships(model, root)
    logger.debug(
        f"Decoded {MODEL_KEY} model '{model.name}' with {len(model.variables)} variables "
        f"and {len(model.regulations)} relationships"
    )
    return model


def decode_analysis_input(root):
    """
    Build a Model from a legacy ``<AnalysisInput>`` document.

    Variables may sit directly under ``<Variables>`` or inside (possibly
    nested) ``<Container>`` elements. Nesting is flattened: every variable
    belongs to its innermost enclosing container.

    Args:
        root: Root element of the parsed document

    Returns:
        Model: The decoded model
    """
    if not matches_analysis_input(root):
        raise MalformedModelError(f"expected <AnalysisInput>, found <{local_name(root.tag)}>", "$")
    model = Model(as_text(field(root, "ModelName", "Name")), metadata=_read_metadata(root))
    pending = []

    containers = child(root, "Containers")
    if containers is not None:
        stack = [(element, f"Containers[{i}]") for i, element in enumerate(children(containers, "Container"))]
        stack.reverse()
        while stack:
            element, location = stack.pop()
            container, _ = read_container(element, location)
            add(model, "add_container", container, location)
            nested = child(element, "Variables")
            if nested is not None:
                for j, item in enumerate(children(nested, "Variable")):
                    pending.append((item, f"{location}.Variables[{j}]", container.id))
            inner = child(element, "Containers")
            if inner is not None:
                items = children(inner, "Container")
                stack.extend(
                    (item, f"{location}.Containers[{j}]") for j, item in reversed(list(enumerate(items)))
                )

    variables = child(root, "Variables")
    if variables is not None:
        pending = [
            (element, f"Variables[{i}]", None) for i, element in enumerate(children(variables, "Variable"))
        ] + pending

    for element, location, container_id in pending:
        variable, _ = read_variable(element, location, container_id)
        add(model, "add_variable", variable, location)

    _read_relationships(model, root)
    logger.debug(
        f"Decoded {ANALYSIS_INPUT_KEY} model '{model.name}' with {len(model.variables)} variables "
        f"and {len(model.regulations)} relationships"
    )
    return model
