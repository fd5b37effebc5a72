"""Password hashing service using Django-format PBKDF2-SHA256 digests.

Digests look like ``pbkdf2_sha256$<iterations>$<salt>$<base64 hash>`` and
carry everything needed to verify them. Legacy bcrypt digests still
verify and are always flagged for rehash.
"""

import base64
import binascii

import bcrypt
from passlib.context import CryptContext
from passlib.exc import PasswordSizeError

from jelly_identity.exceptions import DigestDecodeError

PBKDF2_ALGORITHM = "pbkdf2_sha256"
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
BCRYPT_MAX_BYTES = 72


class PasswordHashingService:
    """Service for secure password hashing and verification.

    Examples
    --------
    >>> service = PasswordHashingService(iterations=1000)
    >>> digest = service.hash("my-secure-password")
    >>> service.verify("my-secure-password", digest)
    True
    >>> service.verify("wrong-password", digest)
    False
    """

    DEFAULT_ITERATIONS = 870_000

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        """Initialize the password hashing service.

        Parameters
        ----------
        iterations
            PBKDF2 iteration count for new digests. Digests made with a
            different count still verify but report ``needs_rehash``.
        """
        if iterations < 1:
            msg = "iterations must be positive"
            raise ValueError(msg)

        self._iterations = iterations
        self._context = CryptContext(
            schemes=["django_pbkdf2_sha256"],
            django_pbkdf2_sha256__default_rounds=iterations,
        )

    @property
    def iterations(self) -> int:
        return self._iterations

    def hash(self, password: str) -> str:
        """Hash a plaintext password.

        Run the strength checker first; this method hashes whatever it is
        given.

        Returns
        -------
        The self-describing digest string
        """
        return self._context.hash(password)

    def verify(self, password: str, digest: str) -> bool:
        """Verify a password against a digest in constant time.

        Returns
        -------
        True if password matches, False otherwise

        Raises
        ------
        DigestDecodeError
            If the digest is malformed. A mismatch is never reported this way.
        """
        if digest.startswith(BCRYPT_PREFIXES):
            return self._verify_bcrypt(password, digest)

        self._parse_pbkdf2(digest)
        try:
            return self._context.verify(password, digest)
        except PasswordSizeError:
            return False
        except ValueError as e:
            raise DigestDecodeError() from e

    def needs_rehash(self, digest: str) -> bool:
        """Check if a digest should be regenerated on next successful login.

        True for bcrypt digests and for PBKDF2 digests whose iteration count
        differs from the configured one.

        Raises
        ------
        DigestDecodeError
            If the digest is malformed
        """
        if digest.startswith(BCRYPT_PREFIXES):
            return True
        iterations = self._parse_pbkdf2(digest)
        return iterations != self._iterations

    def _parse_pbkdf2(self, digest: str) -> int:
        parts = digest.split("$")
        if len(parts) != 4 or parts[0] != PBKDF2_ALGORITHM:
            raise DigestDecodeError()

        _, iterations_text, salt, encoded_hash = parts
        try:
            iterations = int(iterations_text)
            base64.b64decode(encoded_hash, validate=True)
        except (ValueError, binascii.Error) as e:
            raise DigestDecodeError() from e

        if iterations < 1 or not salt or not encoded_hash:
            raise DigestDecodeError()
        return iterations

    def _verify_bcrypt(self, password: str, digest: str) -> bool:
        try:
            return bcrypt.checkpw(
                password.encode("utf-8")[:BCRYPT_MAX_BYTES],
                digest.encode("utf-8"),
            )
        except (ValueError, TypeError) as e:
            raise DigestDecodeError() from e
