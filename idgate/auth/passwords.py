"""
Salted one-way password hashing on top of werkzeug.security.

Hashes use PBKDF2-SHA256 with a fresh random salt per call; ``salt_rounds``
is the iteration count. Verification goes through werkzeug's
``check_password_hash`` which compares digests in constant time.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from idgate.auth.exceptions import CryptoError
from idgate.utils.config import DEFAULT_SALT_ROUNDS
from idgate.utils.logging import get_logger

logger = get_logger(__name__)

SALT_LENGTH = 16

# hash methods werkzeug.security can verify
SUPPORTED_METHODS = ('pbkdf2', 'scrypt')


def is_password_hash(value) -> bool:
    """True if ``value`` has werkzeug's ``method$salt$digest`` shape."""
    if not isinstance(value, str) or value.count('$') < 2:
        return False
    method, salt, digest = value.split('$', 2)
    return method.split(':', 1)[0] in SUPPORTED_METHODS and bool(salt) and bool(digest)


class PasswordHasher:
    """
    Hash and verify local passwords.

    Hashing is CPU bound, so it runs on a small thread pool; each attempt
    waits only on its own future.
    """

    def __init__(
        self,
        salt_rounds: int = DEFAULT_SALT_ROUNDS,
        *,
        max_workers: int = 4,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self._salt_rounds = salt_rounds
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix='idgate-hash'
        )

    @property
    def method(self) -> str:
        return f"pbkdf2:sha256:{self._salt_rounds}"

    def hash(self, plaintext: str) -> str:
        """
        Hash a password with a fresh salt.

        Raises:
            CryptoError: If the underlying hash function fails
        """
        return self.hash_async(plaintext).result()

    def compare(self, plaintext: str, hashed: str) -> bool:
        """
        Check a password against a stored hash.

        Returns False only for a genuine mismatch.

        Raises:
            CryptoError: If the stored hash is unusable or hashing fails
        """
        return self.compare_async(plaintext, hashed).result()

    def hash_async(self, plaintext: str) -> 'Future[str]':
        return self._executor.submit(self._hash, plaintext)

    def compare_async(self, plaintext: str, hashed: str) -> 'Future[bool]':
        return self._executor.submit(self._compare, plaintext, hashed)

    def _hash(self, plaintext: str) -> str:
        try:
            return generate_password_hash(plaintext, method=self.method, salt_length=SALT_LENGTH)
        except (TypeError, ValueError) as e:
            logger.error(f"Password hashing failed: {type(e).__name__}")
            raise CryptoError("Password hashing failed") from e

    def _compare(self, plaintext: str, hashed: str) -> bool:
        if not hashed:
            raise CryptoError("No stored password hash")
        # check_password_hash answers False for a value it cannot parse
        if not is_password_hash(hashed):
            raise CryptoError("Stored password hash is malformed")
        try:
            return check_password_hash(hashed, plaintext)
        except (TypeError, ValueError) as e:
            logger.error(f"Password comparison failed: {type(e).__name__}")
            raise CryptoError("Password comparison failed") from e

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
