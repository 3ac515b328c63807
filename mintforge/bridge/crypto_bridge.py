"""Crypto bridge — Ed25519 signing of transitions via PyNaCl.

Owner identities are key hashes: blake2b-224 of the Ed25519 verification
key.  A transition is authorized by a vkey witness (verification key +
signature over the transition body) whose key hash equals the transition's
required signer.
"""

from __future__ import annotations

import logging
from pathlib import Path

import nacl.signing
from nacl.exceptions import BadSignatureError
from pycardano import Address, Network, VerificationKeyHash

from mintforge.core.hasher import blake2b_224
from mintforge.models.transition import Transition, VkeyWitness

logger = logging.getLogger(__name__)


def generate_keypair() -> tuple[str, str]:
    """Generate an Ed25519 key-pair.

    Returns
    -------
    tuple[str, str]
        ``(private_key_hex, public_key_hex)``; the private key is the
        32-byte seed.
    """
    sk = nacl.signing.SigningKey.generate()
    return sk.encode().hex(), sk.verify_key.encode().hex()


def sign_data(data: bytes, private_key: str) -> str:
    """Sign *data* with the hex seed *private_key*; return the hex signature."""
    sk = nacl.signing.SigningKey(bytes.fromhex(private_key))
    return sk.sign(data).signature.hex()


def verify_data(data: bytes, signature: str, public_key: str) -> bool:
    """Return ``True`` if *signature* is valid for *data* under *public_key*.

    Fail-closed: an empty or malformed signature or key verifies as False.
    """
    if not signature or not public_key:
        return False
    try:
        vk = nacl.signing.VerifyKey(bytes.fromhex(public_key))
        vk.verify(data, bytes.fromhex(signature))
        return True
    except (BadSignatureError, ValueError, TypeError):
        return False


def key_hash(public_key: str) -> bytes:
    """Owner identity (28-byte key hash) of a hex verification key."""
    return blake2b_224(bytes.fromhex(public_key))


class OwnerKey:
    """An owner's signing key.

    Parameters
    ----------
    private_key:
        Hex-encoded 32-byte Ed25519 seed.
    """

    def __init__(self, private_key: str) -> None:
        self._signing_key = nacl.signing.SigningKey(bytes.fromhex(private_key))

    @classmethod
    def generate(cls) -> OwnerKey:
        private_key, _public_key = generate_keypair()
        return cls(private_key)

    @classmethod
    def load(cls, path: Path) -> OwnerKey:
        """Load a key file holding the hex seed on its first line."""
        return cls(Path(path).read_text(encoding="utf-8").strip())

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.private_key + "\n", encoding="utf-8")
        path.chmod(0o600)

    @property
    def private_key(self) -> str:
        return self._signing_key.encode().hex()

    @property
    def public_key(self) -> str:
        return self._signing_key.verify_key.encode().hex()

    @property
    def key_hash(self) -> bytes:
        return key_hash(self.public_key)

    def address(self, network: Network) -> str:
        """Enterprise key address of this owner on *network*."""
        return Address(
            payment_part=VerificationKeyHash(self.key_hash), network=network
        ).encode()

    def sign(self, transition: Transition) -> Transition:
        """Return *transition* with this key's vkey witness attached."""
        signature = self._signing_key.sign(transition.body_bytes()).signature.hex()
        logger.debug("Signed transition %s as %s", transition.tx_id, self.key_hash.hex())
        return transition.with_witness(
            VkeyWitness(vkey=self.public_key, signature=signature)
        )
