"""Tests for the validator template lookup."""

from __future__ import annotations

import json

import pytest

from mintforge.core.blueprint import DEFAULT_BLUEPRINT_PATH, TemplateLookup
from mintforge.core.errors import DerivationInputInvalid, TemplateNotFound
from mintforge.models.scripts import ParamKind


class TestTemplateLookup:
    def test_bundled_names(self, templates: TemplateLookup):
        assert templates.names == ["factory", "factory_marker", "product"]

    def test_prefix_lookup_does_not_confuse_factory_and_marker(self, templates: TemplateLookup):
        assert templates.get("factory").title == "factory.factory.spend"
        assert templates.get("factory_marker").title == "factory_marker.factory_marker.mint"

    def test_parameter_kinds(self, templates: TemplateLookup):
        assert templates.get("factory_marker").parameter_kinds == (
            ParamKind.BYTES,
            ParamKind.OUTPUT_REFERENCE,
        )
        assert templates.get("product").parameter_kinds == (
            ParamKind.BYTES,
            ParamKind.SCRIPT_HASH,
            ParamKind.BYTES,
        )

    def test_unknown_name(self, templates: TemplateLookup):
        with pytest.raises(TemplateNotFound, match="Validator not found: registry"):
            templates.get("registry")

    def test_lookup_by_code(self, templates: TemplateLookup):
        product = templates.get("product")
        assert templates.by_code(product.compiled_code.upper()) == product
        assert templates.by_code("00") is None

    def test_unsupported_parameter_schema(self):
        blueprint = {
            "validators": [
                {
                    "title": "odd.odd.spend",
                    "compiledCode": "00",
                    "parameters": [{"title": "x", "schema": {"$ref": "#/definitions/Int"}}],
                }
            ]
        }
        with pytest.raises(DerivationInputInvalid, match="unsupported parameter schema"):
            TemplateLookup(blueprint)

    def test_from_custom_path(self, tmp_path):
        path = tmp_path / "plutus.json"
        path.write_text(
            '{"validators": [{"title": "solo.solo.mint", "compiledCode": "AB"}]}',
            encoding="utf-8",
        )
        lookup = TemplateLookup.from_path(path)
        assert lookup.names == ["solo"]
        assert lookup.get("solo").compiled_code == "ab"


class TestBundledPreamble:
    def test_declares_a_placeholder_template_set(self):
        preamble = json.loads(DEFAULT_BLUEPRINT_PATH.read_text(encoding="utf-8"))["preamble"]
        assert "compiler" not in preamble
        assert "Placeholder" in preamble["description"]
        assert preamble["plutusVersion"] == "v3"
