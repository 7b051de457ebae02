"""
Shared fixtures for the bmadata test suite
"""

import json

import pytest

from bmadata import Model, Regulation, RegulationType, Variable


def make_model(variables, regulations=(), name="test"):
    """
    Build a model from compact tuples.

    Args:
        variables: ``(id, name, low, high, formula)`` tuples
        regulations: ``(source, target, sign)`` tuples, sign "+" or "-"
    """
    model = Model(name)
    for var_id, var_name, low, high, formula in variables:
        model.add_variable(Variable(var_id, var_name, low, high, formula))
    for i, (source, target, sign) in enumerate(regulations):
        kind = RegulationType.ACTIVATOR if sign == "+" else RegulationType.INHIBITOR
        model.add_regulation(Regulation(source, target, kind, id=100 + i))
    return model


@pytest.fixture
def activation_model():
    """A -> B, both Boolean, B copies A."""
    return make_model(
        [(1, "A", 0, 1, ""), (2, "B", 0, 1, "var(A)")],
        [(1, 2, "+")],
        name="activation",
    )


@pytest.fixture
def current_document():
    return {
        "name": "Toggle",
        "containers": [{"id": 1, "name": "Cell"}],
        "variables": [
            {"id": 1, "name": "A", "rangeFrom": 0, "rangeTo": 1, "formula": "", "type": "Default", "containerId": 1},
            {
                "id": 2,
                "name": "B",
                "rangeFrom": 0,
                "rangeTo": 1,
                "formula": "var(A)",
                "type": "MembraneReceptor",
                "containerId": 1,
            },
        ],
        "relationships": [{"id": 3, "fromVariable": 1, "toVariable": 2, "type": "Activator"}],
        "layout": {
            "description": "toggle switch",
            "zoomLevel": 1.5,
            "variables": [
                {"id": 1, "positionX": 10.0, "positionY": 20.0, "angle": 0.0, "description": "", "cellX": 0, "cellY": 1},
                {"id": 2, "positionX": 30.0, "positionY": 20.0, "angle": 90.0, "description": "receptor"},
            ],
            "containers": [{"id": 1, "size": 2, "positionX": 0.0, "positionY": 0.0}],
        },
        "metadata": {"BioCheckVersion": "1.0"},
    }


@pytest.fixture
def current_bytes(current_document):
    return json.dumps(current_document).encode("utf-8")


@pytest.fixture
def model_layout_bytes():
    """The Toggle model as exported by the BMA tool, with quoted numbers."""
    document = {
        "Model": {
            "Name": "Toggle",
            "Variables": [
                {"Id": 1, "Name": "A", "RangeFrom": 0, "RangeTo": "1", "Formula": ""},
                {"Id": "2", "Name": "", "RangeFrom": "\"0\"", "RangeTo": 1, "Formula": "var(1)"},
            ],
            "Relationships": [{"Id": 3, "FromVariable": 1, "ToVariable": 2, "Type": "Activator"}],
        },
        "Layout": {
            "Variables": [
                {"Id": 1, "Name": "A", "Type": "Default", "ContainerId": 1, "PositionX": 10, "PositionY": 20},
                {"Id": 2, "Name": "B", "Type": "MembraneReceptor", "ContainerId": 1, "Angle": 90},
            ],
            "Containers": [{"Id": 1, "Name": "Cell", "Size": 2, "PositionX": 0, "PositionY": 0}],
            "Description": "toggle switch",
        },
    }
    return json.dumps(document).encode("utf-8")


@pytest.fixture
def xml_model_bytes():
    return b"""<?xml version="1.0" encoding="utf-8"?>
<Model Id="7" Name="Toggle" BioCheckVersion="1.0">
  <Description>toggle switch</Description>
  <Variables>
    <Variable Id="1">
      <Name>A</Name>
      <RangeFrom>0</RangeFrom>
      <RangeTo>1</RangeTo>
      <Formula></Formula>
      <Type>Default</Type>
      <ContainerId>1</ContainerId>
      <PositionX>10</PositionX>
      <PositionY>20</PositionY>
    </Variable>
    <Variable Id="2" Name="B">
      <RangeFrom>0</RangeFrom>
      <RangeTo>1</RangeTo>
      <Function>var(A)</Function>
      <Type>membranereceptor</Type>
      <ContainerId>1</ContainerId>
    </Variable>
  </Variables>
  <Relationships>
    <Relationship Id="3">
      <FromVariableId>1</FromVariableId>
      <ToVariableId>2</ToVariableId>
      <Type>activator</Type>
    </Relationship>
  </Relationships>
  <Containers>
    <Container Id="1" Name="Cell">
      <PositionX>0</PositionX>
      <PositionY>0</PositionY>
      <Size>2</Size>
    </Container>
  </Containers>
  <Layout>
    <Columns>4</Columns>
    <Rows>3</Rows>
    <ZoomLevel>1.5</ZoomLevel>
  </Layout>
</Model>
"""


@pytest.fixture
def analysis_input_bytes():
    return b"""<AnalysisInput ModelName="Nested">
  <Variables>
    <Variable Id="1">
      <Name>Signal</Name>
      <RangeFrom>0</RangeFrom>
      <RangeTo>2</RangeTo>
      <Function></Function>
    </Variable>
  </Variables>
  <Containers>
    <Container Id="10" Name="Cell">
      <Variables>
        <Variable Id="2">
          <Name>Receptor</Name>
          <RangeFrom>0</RangeFrom>
          <RangeTo>2</RangeTo>
          <Function>var(1)</Function>
        </Variable>
      </Variables>
      <Containers>
        <Container Id="11" Name="Nucleus">
          <Variables>
            <Variable Id="3">
              <Name>Gene</Name>
              <RangeFrom>0</RangeFrom>
              <RangeTo>2</RangeTo>
              <Function>var(2)</Function>
            </Variable>
          </Variables>
        </Container>
      </Containers>
    </Container>
  </Containers>
  <Relationships>
    <Relationship Id="1">
      <FromVariableId>1</FromVariableId>
      <ToVariableId>2</ToVariableId>
      <Type>Activator</Type>
    </Relationship>
    <Relationship Id="2">
      <FromVariableId>2</FromVariableId>
      <ToVariableId>3</ToVariableId>
      <Type>Activator</Type>
    </Relationship>
  </Relationships>
</AnalysisInput>
"""


@pytest.fixture
def legacy_bytes():
    document = {
        "Model": {
            "Name": "Legacy",
            "Variables": [
                {"Id": 1, "Name": "Cell::A", "Granularity": 1, "Formula": ""},
                {"Id": 2, "Name": "Cell::B", "Granularity": "2", "Formula": "2 - 2 * var(1)"},
                {"Id": 3, "Name": "C", "Granularity": 1, "Formula": "var(2)"},
            ],
            "Relationships": [
                {"Id": 1, "FromVariable": 1, "ToVariable": 2},
                {"Id": 2, "FromVariable": 2, "ToVariable": 3},
            ],
        }
    }
    return json.dumps(document).encode("utf-8")
