"""Signatures attached to task responses.

The message is ``"Hello " + task.name``. Its keccak256 hash is rendered as
0x-prefixed hex, prefixed with ``\\x19\\x01`` and hashed again with sha256;
the resulting digest is signed with ECDSA over secp256k1 using a random
nonce. The signature is ``r || s``, each left-padded to 32 bytes.

The ``\\x19\\x01`` prefix borrows the marker of the structured-data signing
convention but is applied to a hex string, so it is not EIP-191/712
compatible. Contracts verifying these signatures must rebuild the same
string.
"""

import hashlib
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    decode_dss_signature,
    encode_dss_signature,
)
from eth_utils import keccak

from avs_operator.errors import SigningError, SigningKeyError
from avs_operator.models import Task
from avs_operator.transaction_builder import load_account

logger = logging.getLogger(__name__)

EIP191_MARKER = "\x19\x01"
SCALAR_SIZE = 32
SIGNATURE_SIZE = 2 * SCALAR_SIZE

_ALGORITHM = ec.ECDSA(Prehashed(hashes.SHA256()))


def response_message(task: Task) -> str:
    return f"Hello {task.name}"


def eip191_hash(message: str) -> str:
    return EIP191_MARKER + "0x" + keccak(text=message).hex()


def message_hash(task: Task) -> bytes:
    """32-byte digest that gets signed for ``task``."""
    return hashlib.sha256(eip191_hash(response_message(task)).encode("utf-8")).digest()


def _private_key(key) -> ec.EllipticCurvePrivateKey:
    try:
        account = load_account(key)
    except SigningKeyError as e:
        raise SigningError(f"Invalid signing key: {e}") from e
    secret = int.from_bytes(bytes(account.key), "big")
    try:
        return ec.derive_private_key(secret, ec.SECP256K1())
    except ValueError as e:
        raise SigningError(f"Invalid signing key: {e}") from e


def _public_key(key) -> ec.EllipticCurvePublicKey:
    if isinstance(key, ec.EllipticCurvePublicKey):
        return key
    if isinstance(key, (bytes, bytearray)) and len(key) in (33, 65):
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256K1(), bytes(key))
    return _private_key(key).public_key()


def split_signature(signature: bytes):
    if len(signature) != SIGNATURE_SIZE:
        raise ValueError(f"signature must be {SIGNATURE_SIZE} bytes, got {len(signature)}")
    r = int.from_bytes(signature[:SCALAR_SIZE], "big")
    s = int.from_bytes(signature[SCALAR_SIZE:], "big")
    return r, s


class ResponseSigner:
    def sign(self, key, task: Task) -> bytes:
        digest = message_hash(task)
        private_key = _private_key(key)
        try:
            der = private_key.sign(digest, _ALGORITHM)
        except ValueError as e:
            raise SigningError(f"failed to sign message: {e}") from e
        r, s = decode_dss_signature(der)
        return r.to_bytes(SCALAR_SIZE, "big") + s.to_bytes(SCALAR_SIZE, "big")

    def verify(self, key, task: Task, signature: bytes) -> bool:
        """``key`` may be a private key (hex/account) or a secp256k1 public key."""
        try:
            r, s = split_signature(signature)
        except ValueError:
            return False
        if r <= 0 or s <= 0:
            return False
        try:
            _public_key(key).verify(
                encode_dss_signature(r, s), message_hash(task), _ALGORITHM
            )
        except InvalidSignature:
            return False
        return True
