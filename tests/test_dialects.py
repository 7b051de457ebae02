"""
Tests for dialect sniffing, decoding and encoding
"""

import json

import pytest

from bmadata import (
    DecodeError,
    MalformedModelError,
    RegulationType,
    UnrecognizedFormatError,
    VariableType,
    decode,
    encode,
    sniff,
)
from bmadata.dialects import DIALECT_KEYS
from bmadata.dialects._common import as_identifier, as_int, unquote
from bmadata.dialects.json_legacy import split_container

from conftest import make_model


class TestSniff:
    def test_json_dialects(self, current_bytes, model_layout_bytes, legacy_bytes):
        assert sniff(current_bytes) == "json-current"
        assert sniff(model_layout_bytes) == "json-model-layout"
        assert sniff(legacy_bytes) == "json-legacy"

    def test_xml_dialects(self, xml_model_bytes, analysis_input_bytes):
        assert sniff(xml_model_bytes) == "xml-model"
        assert sniff(analysis_input_bytes) == "xml-analysis-input"

    def test_keys_are_unique(self):
        assert len(set(DIALECT_KEYS)) == len(DIALECT_KEYS)

    def test_byte_order_mark(self, current_bytes):
        assert sniff(b"\xef\xbb\xbf" + current_bytes) == "json-current"

    def test_neither_json_nor_xml(self):
        with pytest.raises(UnrecognizedFormatError):
            sniff(b"Model: toggle")

    def test_unknown_json_shape(self):
        with pytest.raises(UnrecognizedFormatError):
            decode(b'{"nodes": []}')

    def test_unknown_xml_root(self):
        with pytest.raises(UnrecognizedFormatError):
            decode(b"<Network/>")


class TestCurrentJson:
    def test_round_trip(self, current_document, current_bytes):
        assert json.loads(encode(decode(current_bytes))) == current_document

    def test_round_trip_keeps_omitted_fields_out(self):
        document = {
            "name": "minimal",
            "variables": [
                {"id": 1, "name": "A", "rangeFrom": 0, "rangeTo": 1, "formula": ""},
                {"id": 2, "name": "B", "rangeFrom": 0, "rangeTo": 1, "formula": "var(A)"},
            ],
            "relationships": [{"fromVariable": 1, "toVariable": 2, "type": "Activator"}],
            "layout": {
                "variables": [
                    {"id": 1, "positionX": 1, "positionY": 2},
                    {"id": 2, "positionX": 3.5, "positionY": 0},
                ]
            },
        }
        model = decode(json.dumps(document))
        assert model.get_variable(1).kind is None
        encoded = json.loads(encode(model))
        assert encoded == document
        assert isinstance(encoded["layout"]["variables"][0]["positionX"], int)
        assert isinstance(encoded["layout"]["variables"][1]["positionX"], float)

    def test_omitted_type_matches_default(self):
        full = make_model([(1, "A", 0, 1, "")])
        bare = decode(json.dumps({"name": "test", "variables": [{"id": 1, "name": "A", "rangeFrom": 0, "rangeTo": 1}]}))
        assert bare.same_structure(full)

    def test_decoded_content(self, current_bytes):
        model = decode(current_bytes)
        assert model.name == "Toggle"
        assert [v.name for v in model.variables] == ["A", "B"]
        assert model.get_variable(2).kind is VariableType.MEMBRANE_RECEPTOR
        assert model.get_variable(2).container_id == 1
        assert model.regulations[0].sign is RegulationType.ACTIVATOR
        assert model.layout.variables[2].angle == 90.0
        assert model.layout.containers[1].size == 2
        assert model.metadata == {"BioCheckVersion": "1.0"}

    def test_encode_is_pretty_utf8(self):
        model = make_model([(1, "Zellkern-β", 0, 1, "")])
        raw = encode(model)
        assert "Zellkern-β" in raw.decode("utf-8")
        assert b"\n    " in raw

    def test_encode_omits_optional_sections(self):
        document = json.loads(encode(make_model([(1, "A", 0, 1, "")])))
        assert set(document) == {"name", "variables", "relationships"}
        assert "containerId" not in document["variables"][0]

    def test_numbers_must_not_be_quoted(self, current_document):
        current_document["variables"][0]["rangeTo"] = "1"
        with pytest.raises(MalformedModelError) as info:
            decode(json.dumps(current_document))
        assert info.value.location == "variables[0].rangeTo"

    def test_missing_id(self, current_document):
        del current_document["variables"][1]["id"]
        with pytest.raises(MalformedModelError) as info:
            decode(json.dumps(current_document))
        assert info.value.location == "variables[1].id"

    def test_duplicate_id(self, current_document):
        current_document["variables"][1]["id"] = 1
        with pytest.raises(MalformedModelError):
            decode(json.dumps(current_document))

    def test_dangling_relationship(self, current_document):
        current_document["relationships"][0]["toVariable"] = 42
        with pytest.raises(MalformedModelError):
            decode(json.dumps(current_document))

    def test_bad_relationship_type(self, current_document):
        current_document["relationships"][0]["type"] = "Catalyst"
        with pytest.raises(MalformedModelError) as info:
            decode(json.dumps(current_document))
        assert info.value.location == "relationships[0].type"

    def test_invalid_json(self):
        with pytest.raises(MalformedModelError):
            decode(b'{"variables": [')


class TestModelLayoutJson:
    def test_names_and_types_come_from_layout(self, model_layout_bytes):
        model = decode(model_layout_bytes)
        b = model.get_variable(2)
        assert b.name == "B"
        assert b.kind is VariableType.MEMBRANE_RECEPTOR
        assert b.container_id == 1
        assert model.containers[0].name == "Cell"

    def test_quoted_numbers(self, model_layout_bytes):
        model = decode(model_layout_bytes)
        assert model.get_variable(1).bounds == (0, 1)
        assert model.get_variable(2).bounds == (0, 1)

    def test_camel_case_aliases(self):
        document = {
            "model": {
                "name": "m",
                "variables": [{"id": 1, "name": "A", "rangeFrom": 0, "rangeTo": 1, "formula": ""}],
                "relationships": [{"id": 2, "fromVariableId": 1, "toVariableId": 1, "type": 2}],
            }
        }
        model = decode(json.dumps(document))
        assert model.regulations[0].sign is RegulationType.INHIBITOR
        assert model.layout is None


class TestLegacyJson:
    def test_granularity_ranges(self, legacy_bytes):
        model = decode(legacy_bytes)
        assert model.get_variable(1).bounds == (0, 1)
        assert model.get_variable(2).bounds == (0, 2)

    def test_containers_from_name_prefix(self, legacy_bytes):
        model = decode(legacy_bytes)
        assert [(c.id, c.name) for c in model.containers] == [(1, "Cell")]
        assert [v.name for v in model.variables] == ["A", "B", "C"]
        assert model.get_variable(1).container_id == 1
        assert model.get_variable(2).container_id == 1
        assert model.get_variable(3).container_id is None

    def test_signs_inferred_from_formula(self, legacy_bytes):
        model = decode(legacy_bytes)
        signs = {(r.source, r.target): r.sign for r in model.regulations}
        assert signs == {(1, 2): RegulationType.INHIBITOR, (2, 3): RegulationType.ACTIVATOR}

    def test_inference_is_logged(self, legacy_bytes, caplog):
        with caplog.at_level("WARNING", logger="bmadata"):
            decode(legacy_bytes)
        assert any("inferred Inhibitor" in record.getMessage() for record in caplog.records)

    def test_split_container(self):
        assert split_container("Cell::A") == ("Cell", "A")
        assert split_container("A") == (None, "A")
        assert split_container("::A") == (None, "::A")


class TestXml:
    def test_model_document(self, xml_model_bytes):
        model = decode(xml_model_bytes)
        assert model.name == "Toggle"
        assert model.metadata == {"BioCheckVersion": "1.0"}
        assert model.layout.columns == 4
        assert model.layout.zoom_level == 1.5
        assert model.layout.variables[1].position_y == 20.0
        assert model.get_variable(2).kind is VariableType.MEMBRANE_RECEPTOR

    def test_nested_containers_are_flattened(self, analysis_input_bytes):
        model = decode(analysis_input_bytes)
        assert model.name == "Nested"
        assert [(c.id, c.name) for c in model.containers] == [(10, "Cell"), (11, "Nucleus")]
        assert [(v.id, v.container_id) for v in model.variables] == [(1, None), (2, 10), (3, 11)]
        assert len(model.regulations) == 2

    def test_missing_range(self):
        raw = b"<Model Name='m'><Variables><Variable Id='1'><Name>A</Name></Variable></Variables></Model>"
        with pytest.raises(MalformedModelError) as info:
            decode(raw)
        assert info.value.location == "Variables[0].RangeFrom"

    def test_invalid_xml(self):
        with pytest.raises(MalformedModelError):
            decode(b"<Model><Variables></Model>")


class TestAdapterEquivalence:
    def test_same_model_in_every_dialect(self, current_bytes, model_layout_bytes, xml_model_bytes):
        current = decode(current_bytes)
        assert current.same_structure(decode(model_layout_bytes))
        assert current.same_structure(decode(xml_model_bytes))

    def test_encoded_documents_decode_equal(self, xml_model_bytes, analysis_input_bytes, legacy_bytes):
        for raw in (xml_model_bytes, analysis_input_bytes, legacy_bytes):
            model = decode(raw)
            assert decode(encode(model)).same_structure(model)


class TestFormatHints:
    def test_dialect_key_selects_adapter(self, model_layout_bytes):
        model = decode(model_layout_bytes, "json-model-layout")
        assert model.name == "Toggle"

    def test_family_hint(self, xml_model_bytes):
        assert decode(xml_model_bytes, ".xml").name == "Toggle"

    def test_wrong_family_hint(self, xml_model_bytes):
        with pytest.raises(DecodeError):
            decode(xml_model_bytes, "json")

    def test_unknown_hint(self, current_bytes):
        with pytest.raises(ValueError):
            decode(current_bytes, "yaml")

    def test_str_input(self, current_bytes):
        assert decode(current_bytes.decode("utf-8")).name == "Toggle"


class TestCommonReaders:
    def test_unquote(self):
        assert unquote('""3""') == "3"
        assert unquote(" 4 ") == "4"
        assert unquote(5) == 5

    def test_as_int(self):
        assert as_int('"2"', "x") == 2
        assert as_int(3.0, "x") == 3
        with pytest.raises(MalformedModelError):
            as_int("2.5", "x")
        with pytest.raises(MalformedModelError):
            as_int(True, "x")
        with pytest.raises(MalformedModelError):
            as_int("2", "x", quoted=False)

    def test_as_identifier(self):
        assert as_identifier("12", "x") == 12
        assert as_identifier("gene", "x") == "gene"
        assert as_identifier("12", "x", quoted=False) == "12"
        with pytest.raises(MalformedModelError):
            as_identifier("", "x")
