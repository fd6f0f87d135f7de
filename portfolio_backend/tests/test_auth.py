import unittest
from datetime import timedelta

import bcrypt
from jose import jwt

from portfolio_backend import keys
from portfolio_backend.auth import ALGORITHM, AuthService, extract_token, hash_password, verify_password
from portfolio_backend.config import Settings
from portfolio_backend.errors import InvalidCredentials, InvalidToken, RateLimited, Unauthenticated
from portfolio_backend.models import utcnow
from portfolio_backend.store import InMemoryKeyValueStore


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def make_settings(**overrides) -> Settings:
    values = dict(
        jwt_secret="test-secret",
        admin_username="admin",
        admin_password_hash=hash_password("secret"),
        max_login_attempts=3,
        login_cooldown=timedelta(minutes=15),
    )
    values.update(overrides)
    return Settings(**values)


class AuthServiceTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.store = InMemoryKeyValueStore(clock=self.clock)
        self.auth = AuthService(make_settings(), self.store)

    def test_login_issues_verifiable_token(self):
        issued = self.auth.login("admin", "secret", "1.2.3.4")
        claims = self.auth.verify(issued.token)

        self.assertEqual(claims.username, "admin")
        self.assertEqual(issued.as_dict()["message"], "Login successful")
        decoded = jwt.decode(issued.token, "test-secret", algorithms=[ALGORITHM], issuer="portfolio-admin")
        self.assertEqual(decoded["sub"], "admin")

    def test_wrong_password_counts_attempt(self):
        with self.assertRaises(InvalidCredentials):
            self.auth.login("admin", "nope", "1.2.3.4")
        self.assertEqual(self.store.get(keys.login_attempts("1.2.3.4")), "1")
        self.assertEqual(self.store.ttl(keys.login_attempts("1.2.3.4")), 15 * 60)

    def test_rate_limit_then_cooldown(self):
        for _ in range(3):
            with self.assertRaises(InvalidCredentials):
                self.auth.login("admin", "nope", "1.2.3.4")

        with self.assertRaises(RateLimited):
            self.auth.login("admin", "secret", "1.2.3.4")
        # Other clients are unaffected.
        self.auth.login("admin", "secret", "5.6.7.8")

        self.clock.now += 15 * 60
        self.auth.login("admin", "secret", "1.2.3.4")

    def test_success_resets_attempts(self):
        for _ in range(2):
            with self.assertRaises(InvalidCredentials):
                self.auth.login("admin", "nope", "1.2.3.4")
        self.auth.login("admin", "secret", "1.2.3.4")
        self.assertFalse(self.store.exists(keys.login_attempts("1.2.3.4")))

    def test_wrong_username_rejected(self):
        with self.assertRaises(InvalidCredentials):
            self.auth.login("root", "secret", "1.2.3.4")

    def test_verify_rejects_bad_tokens(self):
        with self.assertRaises(Unauthenticated):
            self.auth.verify("")
        with self.assertRaises(InvalidToken):
            self.auth.verify("not-a-token")

        other = AuthService(make_settings(jwt_secret="other-secret"), self.store)
        with self.assertRaises(InvalidToken):
            self.auth.verify(other.login("admin", "secret", "1.2.3.4").token)

    def test_expired_token_rejected(self):
        past = AuthService(make_settings(), self.store, clock=lambda: utcnow() - timedelta(hours=2))
        token = past.login("admin", "secret", "1.2.3.4").token
        with self.assertRaises(InvalidToken):
            self.auth.verify(token)

    def test_logout_revokes_token(self):
        token = self.auth.login("admin", "secret", "1.2.3.4").token
        self.assertTrue(self.auth.logout(token))

        with self.assertRaises(InvalidToken):
            self.auth.verify(token)
        ttl = self.store.ttl(keys.denylisted_token(token))
        self.assertGreater(ttl, 0)
        self.assertLessEqual(ttl, 30 * 60)

    def test_login_with_bcrypt_hash(self):
        for prefix in (b"2a", b"2b"):
            hashed = bcrypt.hashpw(b"secret", bcrypt.gensalt(rounds=4, prefix=prefix)).decode()
            auth = AuthService(make_settings(admin_password_hash=hashed), self.store)

            self.assertTrue(auth.login("admin", "secret", "10.0.0.9").token)
            with self.assertRaises(InvalidCredentials):
                auth.login("admin", "wrong", "10.0.0.9")

    def test_logout_ignores_invalid_token(self):
        self.assertFalse(self.auth.logout("garbage"))
        self.assertFalse(self.auth.logout(""))


class PasswordTests(unittest.TestCase):
    def test_hash_and_verify(self):
        hashed = hash_password("secret")
        self.assertTrue(verify_password("secret", hashed))
        self.assertFalse(verify_password("wrong", hashed))
        self.assertFalse(verify_password("secret", ""))
        self.assertFalse(verify_password("secret", "not-a-hash"))

    def test_extract_token_prefers_header(self):
        self.assertEqual(extract_token("Bearer abc", "cookie"), "abc")
        self.assertEqual(extract_token(None, "cookie"), "cookie")
        self.assertEqual(extract_token("Basic xyz", None), "")


if __name__ == "__main__":
    unittest.main()
