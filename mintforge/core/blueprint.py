"""Compiled validator template lookup over a CIP-57 blueprint (plutus.json).

Templates are looked up by name prefix (``"factory"``, ``"factory_marker"``,
``"product"``).  Each template's parameter schema references fix the kinds
of parameter it accepts, in order.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from mintforge.core.errors import DerivationInputInvalid, TemplateNotFound
from mintforge.models.scripts import SCHEMA_REF_KINDS, ValidatorTemplate

logger = logging.getLogger(__name__)

DEFAULT_BLUEPRINT_PATH = Path(__file__).resolve().parent.parent / "data" / "plutus.json"


class TemplateLookup:
    """Name-prefix lookup of compiled validator templates.

    Parameters
    ----------
    blueprint:
        The parsed blueprint document (``{"validators": [...]}``).
    """

    def __init__(self, blueprint: dict[str, Any]) -> None:
        self._templates: list[ValidatorTemplate] = [
            self._parse_validator(v) for v in blueprint.get("validators", [])
        ]
        self._by_code: dict[str, ValidatorTemplate] = {}
        for template in self._templates:
            self._by_code.setdefault(template.compiled_code, template)

    @classmethod
    def from_path(cls, path: Path | None = None) -> TemplateLookup:
        """Load a blueprint file; the bundled one when *path* is None."""
        path = Path(path) if path is not None else DEFAULT_BLUEPRINT_PATH
        logger.debug("Loading validator blueprint from %s", path)
        return cls(json.loads(path.read_text(encoding="utf-8")))

    @staticmethod
    def _parse_validator(entry: dict[str, Any]) -> ValidatorTemplate:
        titles: list[str] = []
        kinds = []
        for param in entry.get("parameters", []):
            ref = param.get("schema", {}).get("$ref", "")
            kind = SCHEMA_REF_KINDS.get(ref)
            if kind is None:
                raise DerivationInputInvalid(
                    f"Validator {entry.get('title')!r}: unsupported parameter schema {ref!r}"
                )
            titles.append(param.get("title", f"param{len(titles)}"))
            kinds.append(kind)
        return ValidatorTemplate(
            title=entry["title"],
            compiled_code=entry["compiledCode"].lower(),
            parameter_titles=tuple(titles),
            parameter_kinds=tuple(kinds),
        )

    @property
    def names(self) -> list[str]:
        """Distinct template names, in blueprint order."""
        seen: list[str] = []
        for template in self._templates:
            if template.name not in seen:
                seen.append(template.name)
        return seen

    def get(self, name: str) -> ValidatorTemplate:
        """Return the first validator whose title starts with ``<name>.``."""
        prefix = name if name.endswith(".") else f"{name}."
        for template in self._templates:
            if template.title.startswith(prefix):
                return template
        raise TemplateNotFound(name)

    def by_code(self, compiled_code: str) -> ValidatorTemplate | None:
        """Return the template compiled to *compiled_code*, if any."""
        return self._by_code.get(compiled_code.lower())
