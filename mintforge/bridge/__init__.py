"""Bridge layer between the protocol core and the owner's signing key.

Modules
-------
crypto_bridge
    Ed25519 key generation, signing and verification via PyNaCl, owner key
    hashes, and ``OwnerKey`` for attaching vkey witnesses to transitions.
"""
