import unittest
from unittest import mock

from app.utils.rate_limit import StorageRateLimiter, build_rate_limiter
from support import FakeClock


class StorageRateLimiterTests(unittest.TestCase):
    def setUp(self):
        # limits timestamps its moving window with time.time()
        self.clock = FakeClock(start=1_700_000_000.0)
        patcher = mock.patch("time.time", side_effect=self.clock)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.limiter = build_rate_limiter("memory://", 5, 60, namespace="test")

    def test_memory_uri_uses_limits_storage(self):
        self.assertIsInstance(self.limiter, StorageRateLimiter)

    def test_sixth_request_in_window_is_rejected(self):
        results = [self.limiter.allow("1.2.3.4") for _ in range(6)]
        self.assertEqual(results, [True] * 5 + [False])

    def test_accepts_again_after_window(self):
        for _ in range(5):
            self.assertTrue(self.limiter.allow("1.2.3.4"))
        self.assertFalse(self.limiter.allow("1.2.3.4"))

        self.clock.advance(61)
        self.assertTrue(self.limiter.allow("1.2.3.4"))

    def test_window_slides(self):
        self.limiter.allow("k")
        self.clock.advance(30)
        for _ in range(4):
            self.assertTrue(self.limiter.allow("k"))
        self.assertFalse(self.limiter.allow("k"))

        # Only the first hit has left the window
        self.clock.advance(31)
        self.assertTrue(self.limiter.allow("k"))
        self.assertFalse(self.limiter.allow("k"))

    def test_rejected_requests_are_not_recorded(self):
        for _ in range(5):
            self.limiter.allow("k")
        for _ in range(10):
            self.assertFalse(self.limiter.allow("k"))

        self.clock.advance(61)
        self.assertTrue(self.limiter.allow("k"))

    def test_keys_are_independent(self):
        for _ in range(5):
            self.limiter.allow("a")
        self.assertFalse(self.limiter.allow("a"))
        self.assertTrue(self.limiter.allow("b"))

    def test_namespaces_are_independent(self):
        other = build_rate_limiter("memory://", 1, 60, namespace="other")
        for _ in range(5):
            self.limiter.allow("k")
        self.assertFalse(self.limiter.allow("k"))
        self.assertTrue(other.allow("k"))
        self.assertFalse(other.allow("k"))


if __name__ == "__main__":
    unittest.main()
