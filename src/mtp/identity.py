# identity.py
# Cryptographic identity for protocol participants (executors and requesters).
#
# Ed25519 via PyNaCl. Keys and signatures travel as hex strings. Everything
# signed goes through canonical.canonicalize() first, so signatures depend on
# the structure of the data and never on key order.
#
# The private key never leaves the process. Persisting it is the caller's job.

import secrets
import time
from typing import Any

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import SigningKey, VerifyKey

from mtp.canonical import canonicalize
from mtp.errors import CanonicalizationError
from mtp.models import PublicIdentity


def _new_id(name: str) -> str:
    return f"did:mtp:{name}:{int(time.time() * 1000)}_{secrets.token_hex(4)}"


class Identity:
    """
    A participant's keypair plus its opaque identifier.

    Example:
        identity = Identity.generate("PaymentService")
        signature = identity.sign({"hello": "world"})
        Identity.verify({"hello": "world"}, signature, identity.public_key)  # True
    """

    def __init__(self, name: str, signing_key: SigningKey, identity_id: str | None = None) -> None:
        self.name = name
        self.id = identity_id or _new_id(name)
        self._signing_key = signing_key
        self.public_key: str = signing_key.verify_key.encode(encoder=HexEncoder).decode("ascii")

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def generate(cls, name: str = "anonymous") -> "Identity":
        """Fresh keypair. Entropy failures propagate; they are fatal."""
        return cls(name, SigningKey.generate())

    @classmethod
    def from_private_key(
        cls, private_key_hex: str, name: str = "anonymous", identity_id: str | None = None
    ) -> "Identity":
        """Rebuild an identity from a stored hex-encoded Ed25519 seed."""
        return cls(name, SigningKey(private_key_hex.encode("ascii"), encoder=HexEncoder), identity_id)

    def export_private_key(self) -> str:
        return self._signing_key.encode(encoder=HexEncoder).decode("ascii")

    def public(self) -> PublicIdentity:
        return PublicIdentity(id=self.id, public_key=self.public_key)

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def sign(self, data: Any) -> str:
        """Hex signature over the canonical form of `data`."""
        signed = self._signing_key.sign(canonicalize(data))
        return signed.signature.hex()

    @staticmethod
    def verify(data: Any, signature: str, public_key: str) -> bool:
        """
        True only if `signature` is a valid signature of `data` under `public_key`.

        Never raises: malformed keys, malformed signatures, and data with no
        canonical form all report False, indistinguishable from a bad signature.
        """
        try:
            message = canonicalize(data)
            verify_key = VerifyKey(public_key.encode("ascii"), encoder=HexEncoder)
            verify_key.verify(message, bytes.fromhex(signature))
            return True
        except (BadSignatureError, CryptoError, CanonicalizationError, ValueError, TypeError, AttributeError):
            return False

    def __repr__(self) -> str:
        return f"Identity(id={self.id!r}, public_key={self.public_key[:16]}…)"
