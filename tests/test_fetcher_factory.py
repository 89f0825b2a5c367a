"""
Unit tests for the fetcher factory.
"""

import unittest

from tooth_index.core.interfaces import FetcherConfig, VersionSource
from tooth_index.fetcher import EndstonePythonFetcher, LeviLaminaFetcher, fetcher_factory
from tooth_index.fetcher.base import PackageFetcher
from tooth_index.fetcher.factory import FetcherFactory


class TestFetcherFactory(unittest.TestCase):
    """Test the FetcherFactory class."""

    def setUp(self):
        """Set up the test environment."""
        self.factory = FetcherFactory()

        # Create a concrete implementation of the abstract class for testing
        class TestFetcher(PackageFetcher):
            def __init__(self, config=None, **kwargs):
                super().__init__(config, **kwargs)

            def get_ecosystem_name(self):
                return "test"

            def discover(self):
                return iter([])

            def resolve(self, descriptor):
                return None

        self.TestFetcher = TestFetcher

    def test_register_fetcher(self):
        self.factory.register_fetcher("test", self.TestFetcher)
        self.assertIn("test", self.factory.get_available_fetchers())

    def test_register_rejects_non_fetcher(self):
        with self.assertRaises(TypeError):
            self.factory.register_fetcher("test", object)

    def test_register_rejects_conflicting_class(self):
        self.factory.register_fetcher("test", self.TestFetcher)
        self.factory.register_fetcher("test", self.TestFetcher)

        class OtherFetcher(self.TestFetcher):
            pass

        with self.assertRaises(ValueError):
            self.factory.register_fetcher("test", OtherFetcher)
        self.assertIs(self.factory.get_registered_fetchers()["test"], self.TestFetcher)

    def test_create_fetcher(self):
        self.factory.register_fetcher("test", self.TestFetcher)

        # Create with default config
        fetcher = self.factory.create_fetcher("test")
        self.assertIsInstance(fetcher, self.TestFetcher)
        self.assertIsInstance(fetcher.config, FetcherConfig)

        # Create with custom config and args
        config = FetcherConfig(concurrent_requests=9)
        fetcher = self.factory.create_fetcher(
            "test", config=config, source_priority=[VersionSource.PYPI]
        )
        self.assertEqual(fetcher.config.concurrent_requests, 9)
        self.assertEqual(fetcher.source_priority, [VersionSource.PYPI])

    def test_create_unregistered_fetcher(self):
        self.assertIsNone(self.factory.create_fetcher("nonexistent"))

    def test_create_fetcher_failure_propagates(self):
        class BrokenFetcher(self.TestFetcher):
            def __init__(self, config=None, **kwargs):
                raise RuntimeError("cannot build")

        self.factory.register_fetcher("broken", BrokenFetcher)
        with self.assertRaisesRegex(RuntimeError, "cannot build"):
            self.factory.create_fetcher("broken")

    def test_get_available_fetchers(self):
        self.assertEqual(self.factory.get_available_fetchers(), [])

        self.factory.register_fetcher("test1", self.TestFetcher)
        self.factory.register_fetcher("test2", self.TestFetcher)

        self.assertEqual(self.factory.get_available_fetchers(), ["test1", "test2"])

    def test_get_registered_fetchers_is_a_copy(self):
        self.factory.register_fetcher("test", self.TestFetcher)
        registered = self.factory.get_registered_fetchers()
        registered.clear()
        self.assertEqual(self.factory.get_available_fetchers(), ["test"])


class TestDefaultRegistry(unittest.TestCase):
    """Test the fetchers registered by the package."""

    def test_builtin_ecosystems(self):
        registered = fetcher_factory.get_registered_fetchers()
        self.assertIs(registered["levilamina"], LeviLaminaFetcher)
        self.assertIs(registered["endstone"], EndstonePythonFetcher)

    def test_ecosystem_names_match_registry_keys(self):
        for name in ("levilamina", "endstone"):
            fetcher = fetcher_factory.create_fetcher(name, FetcherConfig())
            self.assertEqual(fetcher.get_ecosystem_name(), name)
            fetcher.close()


if __name__ == "__main__":
    unittest.main()
