"""
Unit tests for PasswordHasher.
"""
from unittest.mock import patch

import pytest

from idgate.auth.exceptions import CryptoError
from idgate.auth.passwords import PasswordHasher, is_password_hash


class TestPasswordHasher:
    """Tests for hashing and comparison."""

    def test_hash_is_not_plaintext(self, hasher):
        hashed = hasher.hash('secret1')

        assert hashed != 'secret1'
        assert hashed.startswith('pbkdf2:sha256:1000$')

    def test_hash_uses_fresh_salt(self, hasher):
        assert hasher.hash('secret1') != hasher.hash('secret1')

    def test_compare_match(self, hasher):
        hashed = hasher.hash('secret1')
        assert hasher.compare('secret1', hashed) is True

    def test_compare_mismatch(self, hasher):
        hashed = hasher.hash('secret1')
        assert hasher.compare('wrong', hashed) is False

    def test_compare_unknown_method_raises_crypto_error(self, hasher):
        with pytest.raises(CryptoError):
            hasher.compare('secret1', 'bogus:method$salt$digest')

    @pytest.mark.parametrize('stored', [
        'garbage-not-a-hash',
        'pbkdf2:sha256:1000$onlysalt',
        'pbkdf2:sha256:1000$$digest',
        'md5$salt$digest',
    ])
    def test_compare_malformed_hash_raises_crypto_error(self, hasher, stored):
        with pytest.raises(CryptoError):
            hasher.compare('secret1', stored)

    def test_is_password_hash(self, hasher):
        assert is_password_hash(hasher.hash('secret1'))
        assert not is_password_hash('garbage-not-a-hash')
        assert not is_password_hash(None)

    def test_compare_missing_hash_raises_crypto_error(self, hasher):
        with pytest.raises(CryptoError):
            hasher.compare('secret1', None)

    @patch('idgate.auth.passwords.generate_password_hash')
    def test_hash_failure_raises_crypto_error(self, mock_generate, hasher):
        mock_generate.side_effect = ValueError("Invalid hash method")

        with pytest.raises(CryptoError):
            hasher.hash('secret1')

    def test_hash_async_returns_future(self, hasher):
        future = hasher.hash_async('secret1')
        assert hasher.compare('secret1', future.result()) is True

    def test_salt_rounds_in_method(self):
        hasher = PasswordHasher(2000, max_workers=1)
        try:
            assert hasher.method == 'pbkdf2:sha256:2000'
        finally:
            hasher.shutdown()
