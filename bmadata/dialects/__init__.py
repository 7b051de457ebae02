"""
Dialect adapters: sniff a raw BMA document, decode it, encode the newest format
"""

import json
import logging
import xml.etree.ElementTree as ET
from collections import namedtuple

from ..errors import MalformedModelError, UnrecognizedFormatError
from . import json_bma, json_current, json_legacy, sbml_qual, xml_bma

logger = logging.getLogger(__name__)

JSON = "json-family"
XML = "xml-family"

Dialect = namedtuple("Dialect", ["key", "family", "matches", "decode"])

# Sniffing order matters: the first matching dialect of a family wins.
DIALECTS = (
    Dialect(json_legacy.KEY, JSON, json_legacy.matches, json_legacy.decode),
    Dialect(json_bma.KEY, JSON, json_bma.matches, json_bma.decode),
    Dialect(json_current.KEY, JSON, json_current.matches, json_current.decode),
    Dialect(sbml_qual.KEY, XML, sbml_qual.matches, None),
    Dialect(xml_bma.ANALYSIS_INPUT_KEY, XML, xml_bma.matches_analysis_input, xml_bma.decode_analysis_input),
    Dialect(xml_bma.MODEL_KEY, XML, xml_bma.matches_model, xml_bma.decode_model),
)

DIALECT_KEYS = tuple(dialect.key for dialect in DIALECTS)

_FAMILY_HINTS = {
    "json": JSON,
    ".json": JSON,
    "xml": XML,
    ".xml": XML,
    ".sbml": XML,
}


def _text(raw):
    if isinstance(raw, bytes):
        try:
            return raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedModelError(f"document is not valid UTF-8: {e}", "$") from None
    return raw


def _family(text):
    stripped = text.lstrip()
    if stripped.startswith("{"):
        return JSON
    if stripped.startswith("<"):
        return XML
    raise UnrecognizedFormatError("document is neither JSON nor XML", "$")


def _load(text, family):
    if family == JSON:
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise MalformedModelError(f"invalid JSON: {e.msg}", f"line {e.lineno} column {e.colno}") from None
    try:
        return ET.fromstring(text)
    except ET.ParseError as e:
        raise MalformedModelError(f"invalid XML: {e}", "$") from None


def _resolve_hint(format_hint):
    if format_hint is None:
        return None, None
    hint = str(format_hint).lower()
    for dialect in DIALECTS:
        if dialect.key == hint:
            return dialect.family, dialect
    if hint in _FAMILY_HINTS:
        return _FAMILY_HINTS[hint], None
    raise ValueError(f"Unknown format hint {format_hint!r}")


def _sniff(parsed, family):
    for dialect in DIALECTS:
        if dialect.family == family and dialect.matches(parsed):
            return dialect
    raise UnrecognizedFormatError("no BMA dialect recognises this document", "$")


def sniff(raw):
    """
    Identify the dialect of a raw document from its content.

    Args:
        raw: Document as bytes or str

    Returns:
        str: One of ``DIALECT_KEYS``
    """
    text = _text(raw)
    family = _family(text)
    return _sniff(_load(text, family), family).key


def decode(raw, format_hint=None):
    """
    Decode a BMA document in any supported dialect.

    Args:
        raw: Document as bytes or str
        format_hint: Optional dialect key (e.g. ``"json-legacy"``), family
            (``"json"``, ``"xml"``) or file suffix (``".json"``). A dialect key
            selects that adapter; a family restricts sniffing.

    Returns:
        Model: The canonical model

    Raises:
        DecodeError: The document is malformed or not recognised

    Example:
        model = decode(Path("model.json").read_bytes(), ".json")
    """
    text = _text(raw)
    family, dialect = _resolve_hint(format_hint)
    if family is None:
        family = _family(text)
    parsed = _load(text, family)
    if dialect is None:
        dialect = _sniff(parsed, family)
    logger.debug(f"Decoding document as {dialect.key}")
    if dialect.key == sbml_qual.KEY:
        return sbml_qual.decode(text)
    return dialect.decode(parsed)


def encode(model):
    """
    Encode a Model as the newest BMA JSON export.

    Returns:
        bytes: UTF-8 JSON document
    """
    document = json_current.encode(model)
    return json.dumps(document, ensure_ascii=False, indent=4).encode("utf-8")


__all__ = ["DIALECTS", "DIALECT_KEYS", "decode", "encode", "sniff"]
