"""
Tests for SBML-qual import
"""

import pytest

from bmadata import MalformedModelError, RegulationType, decode, evaluate_variable, sniff, validate

SBML_QUAL = """<?xml version="1.0" encoding="UTF-8"?>
<sbml xmlns="http://www.sbml.org/sbml/level3/version1/core" level="3" version="1"
      xmlns:qual="http://www.sbml.org/sbml/level3/version1/qual/version1" qual:required="true">
  <model id="toggle" name="Toggle">
    <listOfCompartments>
      <compartment id="cell" constant="true"/>
    </listOfCompartments>
    <qual:listOfQualitativeSpecies>
      <qual:qualitativeSpecies qual:id="A" qual:name="Signal" qual:compartment="cell"
                               qual:constant="false" qual:maxLevel="1"/>
      <qual:qualitativeSpecies qual:id="B" qual:compartment="cell"
                               qual:constant="false" qual:maxLevel="2"/>
    </qual:listOfQualitativeSpecies>
    <qual:listOfTransitions>
      <qual:transition qual:id="tB">
        <qual:listOfInputs>
          <qual:input qual:id="in_A" qual:qualitativeSpecies="A"
                      qual:transitionEffect="none" qual:sign="negative"/>
        </qual:listOfInputs>
        <qual:listOfOutputs>
          <qual:output qual:id="out_B" qual:qualitativeSpecies="B"
                       qual:transitionEffect="assignmentLevel"/>
        </qual:listOfOutputs>
        <qual:listOfFunctionTerms>
          <qual:defaultTerm qual:resultLevel="0"/>
          <qual:functionTerm qual:resultLevel="2">
            <math xmlns="http://www.w3.org/1998/Math/MathML">
              <apply>
                <eq/>
                <ci>A</ci>
                <cn type="integer">0</cn>
              </apply>
            </math>
          </qual:functionTerm>
        </qual:listOfFunctionTerms>
      </qual:transition>
    </qual:listOfTransitions>
  </model>
</sbml>
"""


class TestSbmlQual:
    def setup_method(self):
        self.model = decode(SBML_QUAL.encode("utf-8"))

    def test_sniffed(self):
        assert sniff(SBML_QUAL) == "sbml-qual"

    def test_species_become_variables(self):
        assert self.model.name == "Toggle"
        assert [(v.id, v.name, v.bounds) for v in self.model.variables] == [
            (0, "Signal", (0, 1)),
            (1, "B", (0, 2)),
        ]

    def test_inputs_become_relationships(self):
        assert [(r.source, r.target, r.sign) for r in self.model.regulations] == [(0, 1, RegulationType.INHIBITOR)]

    def test_function_terms_become_formula(self):
        assert evaluate_variable(self.model, 1, {0: 0}) == 2
        assert evaluate_variable(self.model, 1, {0: 1}) == 0
        assert self.model.get_variable(0).formula == ""

    def test_imported_model_validates(self):
        assert validate(self.model).ok

    def test_suffix_hint(self):
        assert decode(SBML_QUAL, ".sbml").same_structure(self.model)


def test_sbml_without_model():
    raw = '<?xml version="1.0"?><sbml xmlns="http://www.sbml.org/sbml/level3/version1/core" level="3" version="1"/>'
    with pytest.raises(MalformedModelError):
        decode(raw)


def test_real_constants_are_kept_exact():
    raw = SBML_QUAL.replace("<eq/>", "<times/>").replace('<cn type="integer">0</cn>', "<cn>0.5</cn>")
    model = decode(raw)
    assert "0.5" in model.get_variable(1).formula
    assert evaluate_variable(model, 1, {0: 1}) == 1
    assert evaluate_variable(model, 1, {0: 0}) == 0
