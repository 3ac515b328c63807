"""Deterministic parameter -> identity hash / address derivation.

``derive(template, params)`` is a pure function of the blueprint template
and the ordered parameter list:

1. The parameters are checked against the template's declared kinds, in
   order.  A missing, extra, or mis-ordered parameter fails fast.
2. The specialized script is the CBOR array
   ``[compiled_code, [param_1, ..., param_n]]`` where each parameter is its
   Plutus data CBOR.  The framing is injective over parameter tuples.
3. The identity hash is the Plutus V3 script hash of the specialized
   script; the address is the enterprise script address of that hash on
   the configured network.

Results are memoized in an explicit cache keyed by
``(template name, encoded parameters)``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import cbor2
from pycardano import (
    Address,
    PlutusV3Script,
    ScriptHash,
    VerificationKeyHash,
    plutus_script_hash,
)

from mintforge.core.blueprint import TemplateLookup
from mintforge.core.codec import (
    ByteStringParam,
    OutputReferenceParam,
    Parameter,
    ScriptHashParam,
    decode_parameter,
)
from mintforge.core.errors import DerivationInputInvalid, TemplateNotFound
from mintforge.models.config import ProtocolConfig
from mintforge.models.identity import OutputRef
from mintforge.models.scripts import DerivedScript, ValidatorTemplate

logger = logging.getLogger(__name__)

FACTORY = "factory"
FACTORY_MARKER = "factory_marker"
PRODUCT = "product"
KEY_HASH_SIZE = 28


class AddressDerivation:
    """Specializes blueprint templates and derives their identities.

    Parameters
    ----------
    templates:
        Compiled template lookup.
    config:
        Protocol configuration; its network selects the address prefix.
    """

    def __init__(self, templates: TemplateLookup, config: ProtocolConfig) -> None:
        self._templates = templates
        self._config = config
        self._cache: dict[tuple[str, tuple[bytes, ...]], DerivedScript] = {}

    @property
    def config(self) -> ProtocolConfig:
        return self._config

    @property
    def templates(self) -> TemplateLookup:
        return self._templates

    # ------------------------------------------------------------------
    # Parameter application
    # ------------------------------------------------------------------

    @staticmethod
    def check_parameters(template: ValidatorTemplate, params: Sequence[Parameter]) -> None:
        """Raise DerivationInputInvalid unless *params* match the template shape."""
        expected = template.parameter_kinds
        if len(params) != len(expected):
            raise DerivationInputInvalid(
                f"{template.name} takes {len(expected)} parameters "
                f"({', '.join(template.parameter_titles)}), got {len(params)}"
            )
        for position, (param, kind) in enumerate(zip(params, expected)):
            if not isinstance(param, Parameter):
                raise DerivationInputInvalid(
                    f"{template.name} parameter {position} must be a typed "
                    f"Parameter, got {type(param).__name__}"
                )
            if param.kind is not kind:
                raise DerivationInputInvalid(
                    f"{template.name} parameter {position} "
                    f"({template.parameter_titles[position]}) expects {kind.value}, "
                    f"got {param.kind.value}"
                )

    def apply_params(self, name: str, params: Sequence[Parameter]) -> bytes:
        """Return the specialized script bytes of template *name*."""
        template = self._templates.get(name)
        self.check_parameters(template, params)
        return cbor2.dumps(
            [bytes.fromhex(template.compiled_code), [p.encode() for p in params]]
        )

    def unapply(self, script: bytes) -> tuple[ValidatorTemplate, list[Parameter]]:
        """Recover ``(template, parameters)`` from a specialized script."""
        try:
            code, raw_params = cbor2.loads(script)
        except Exception as exc:
            raise DerivationInputInvalid(f"Not a specialized script: {exc}") from exc
        if not isinstance(code, bytes) or not isinstance(raw_params, list):
            raise DerivationInputInvalid("Not a specialized script: unexpected framing")

        template = self._templates.by_code(code.hex())
        if template is None:
            raise TemplateNotFound(code.hex()[:16])
        if len(raw_params) != len(template.parameter_kinds):
            raise DerivationInputInvalid(
                f"{template.name} takes {len(template.parameter_kinds)} parameters, "
                f"script carries {len(raw_params)}"
            )
        params = [
            decode_parameter(kind, raw)
            for kind, raw in zip(template.parameter_kinds, raw_params)
        ]
        return template, params

    # ------------------------------------------------------------------
    # Identity and address
    # ------------------------------------------------------------------

    @staticmethod
    def script_hash(script: bytes) -> bytes:
        """Plutus V3 script hash (identity hash) of specialized script bytes."""
        return plutus_script_hash(PlutusV3Script(script)).payload

    def script_address(self, script_hash: bytes) -> str:
        return Address(
            payment_part=ScriptHash(script_hash),
            network=self._config.cardano_network,
        ).encode()

    def key_address(self, owner: bytes) -> str:
        """Enterprise key address (wallet) of an owner identity."""
        return Address(
            payment_part=VerificationKeyHash(self._owner_param(owner).value),
            network=self._config.cardano_network,
        ).encode()

    def derive(self, name: str, params: Sequence[Parameter]) -> DerivedScript:
        """Derive the identity hash and address of template *name* with *params*."""
        template = self._templates.get(name)
        self.check_parameters(template, params)
        key = (template.name, tuple(p.encode() for p in params))
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        script = self.apply_params(name, params)
        digest = self.script_hash(script)
        derived = DerivedScript(
            template=template.name,
            script=script.hex(),
            script_hash=digest.hex(),
            address=self.script_address(digest),
        )
        self._cache[key] = derived
        logger.debug("Derived %s -> %s", template.name, derived.script_hash)
        return derived

    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()

    # ------------------------------------------------------------------
    # Protocol identities
    # ------------------------------------------------------------------

    def factory_marker(self, owner: bytes, seed: OutputRef) -> DerivedScript:
        """FactoryMarkerIdentity of ``(owner, seed)``."""
        return self.derive(
            FACTORY_MARKER,
            [self._owner_param(owner), OutputReferenceParam(reference=seed)],
        )

    def factory(self, owner: bytes, marker_policy_id: bytes) -> DerivedScript:
        """FactoryIdentity of ``(owner, marker)``."""
        return self.derive(
            FACTORY,
            [self._owner_param(owner), self._script_hash_param(marker_policy_id)],
        )

    def product(
        self, owner: bytes, marker_policy_id: bytes, product_id: bytes
    ) -> DerivedScript:
        """ProductIdentity of ``(owner, marker, product id)``."""
        return self.derive(
            PRODUCT,
            [
                self._owner_param(owner),
                self._script_hash_param(marker_policy_id),
                ByteStringParam(value=product_id),
            ],
        )

    @staticmethod
    def _owner_param(owner: bytes) -> ByteStringParam:
        if len(owner) != KEY_HASH_SIZE:
            raise DerivationInputInvalid(
                f"Owner identity must be {KEY_HASH_SIZE} bytes, got {len(owner)}"
            )
        return ByteStringParam(value=owner)

    @staticmethod
    def _script_hash_param(value: bytes) -> ScriptHashParam:
        try:
            return ScriptHashParam(value=value)
        except ValueError as exc:
            raise DerivationInputInvalid(f"Invalid marker identity: {exc}") from exc
