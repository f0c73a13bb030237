"""VAPID credential validation for Web Push."""

import base64
import binascii
import re
from dataclasses import dataclass

from cryptography.hazmat.primitives.serialization import (
    Encoding,
    PublicFormat,
)
from py_vapid import Vapid02, VapidException
from py_vapid.utils import b64urldecode

_PUBLIC_KEY_LEN = 65
_PRIVATE_KEY_LEN = 32
# Placeholder audience; sign() needs one before it checks the sub claim.
_CHECK_AUDIENCE = "https://push.example.com"
_B64URL_RE = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")


class VapidConfigError(ValueError):
    """Signing credentials are missing or malformed."""


@dataclass(frozen=True)
class VapidCredentials:
    """Validated process-wide signing credentials."""

    public_key: str
    vapid: Vapid02
    subject: str

    @property
    def claims(self) -> dict:
        return {"sub": self.subject}


def _public_key_b64url(vapid: Vapid02) -> str:
    """Extract application server key as URL-safe base64."""
    raw = vapid.public_key.public_bytes(
        encoding=Encoding.X962,
        format=PublicFormat.UncompressedPoint,
    )
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _private_key_b64url(vapid: Vapid02) -> str:
    value = vapid.private_key.private_numbers().private_value
    raw = value.to_bytes(_PRIVATE_KEY_LEN, "big")
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


def _decode(name: str, value: str) -> bytes:
    if not _B64URL_RE.match(value):
        raise VapidConfigError(f"{name} is not URL-safe base64")
    try:
        return b64urldecode(value.encode())
    except (ValueError, binascii.Error) as e:
        raise VapidConfigError(f"{name} is not URL-safe base64") from e


def load_vapid_credentials(
    public_key: str,
    private_key: str,
    subject: str,
) -> VapidCredentials:
    """Validate a VAPID key pair and contact subject.

    Args:
        public_key: Uncompressed P-256 point, URL-safe base64.
        private_key: Raw 32-byte private scalar, URL-safe base64.
        subject: ``mailto:`` or ``https:`` contact URI.

    Raises:
        VapidConfigError: describing the first problem found.
    """
    public_key = (public_key or "").strip()
    private_key = (private_key or "").strip()
    subject = (subject or "").strip()

    if not public_key or not private_key:
        raise VapidConfigError("VAPID keys missing")

    raw_public = _decode("public key", public_key)
    if len(raw_public) != _PUBLIC_KEY_LEN or raw_public[0] != 0x04:
        raise VapidConfigError("public key is not an uncompressed P-256 point")

    raw_private = _decode("private key", private_key)
    if len(raw_private) != _PRIVATE_KEY_LEN:
        raise VapidConfigError("private key must be 32 bytes")

    try:
        vapid = Vapid02.from_raw(private_key.encode())
    except ValueError as e:
        raise VapidConfigError("private key is not a valid P-256 scalar") from e

    if _public_key_b64url(vapid) != public_key.rstrip("="):
        raise VapidConfigError("public key does not match private key")

    try:
        vapid.sign({"sub": subject, "aud": _CHECK_AUDIENCE})
    except VapidException as e:
        raise VapidConfigError(
            "subject must be a mailto: address or https: URL with a domain"
        ) from e

    return VapidCredentials(public_key=public_key, vapid=vapid, subject=subject)


def generate_vapid_keys() -> tuple[str, str]:
    """Generate a fresh VAPID EC key pair.

    Returns:
        (public_key, private_key), both URL-safe base64
        without padding.
    """
    vapid = Vapid02()
    vapid.generate_keys()
    return _public_key_b64url(vapid), _private_key_b64url(vapid)
