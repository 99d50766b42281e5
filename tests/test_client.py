"""
Tests for configurate.client.

The client talks to a real ConfigurateService through a recording transport,
so call counts across the boundary can be checked.
"""

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from configurate.client import UNSET, BuildConfig, Configurate, ConfigurateFactory, UnlockedConfig
from configurate.commands import ConfigurateService
from configurate.config.settings import KeyringSettings, Settings
from configurate.config.credentials import CredentialStore
from configurate.errors import ConfigurateError, ConfigurationError, InvalidPathError, SecretNotFoundError
from configurate.models import KeyringOptions
from configurate.schema import define_config, keyring
from configurate.storage.paths import BaseDirectory, DirectoryResolver
from memory_keyring import MemoryKeyring

OPTIONS = KeyringOptions(service="app", account="default")


class RecordingTransport:
    """Forwards calls to a service and records them."""

    def __init__(self, service: ConfigurateService) -> None:
        self.service = service
        self.calls: list[tuple[str, dict]] = []

    def __call__(self, command: str, payload: dict):
        self.calls.append((command, payload))
        return self.service.invoke(command, payload)

    def commands(self) -> list[str]:
        return [command for command, _ in self.calls]


class ClientTestCase(unittest.TestCase):
    """Shared fixture for client tests."""

    def setUp(self) -> None:
        """Create a service, transport and schema."""
        self.temp_dir = tempfile.mkdtemp()
        self.home = Path(self.temp_dir)
        self.backend = MemoryKeyring()
        service = ConfigurateService(
            DirectoryResolver("com.example.app", home=self.home, platform="linux"),
            CredentialStore(backend=self.backend),
        )
        self.transport = RecordingTransport(service)
        self.schema = define_config({
            "host": str,
            "password": keyring(str, id="db-password"),
        })

    def tearDown(self) -> None:
        """Clean up temporary directory."""
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def make(self, **overrides) -> Configurate:
        options = {
            "name": "app.json",
            "dir": BaseDirectory.APP_CONFIG,
            "format": "json",
            "transport": self.transport,
        }
        options.update(overrides)
        return Configurate(self.schema, **options)


class TestExampleScenario(ClientTestCase):
    """The db-password walkthrough."""

    def test_db_password_scenario(self) -> None:
        """Test create, load and unlock for a single secret."""
        config = self.make()
        locked = config.create({"host": "localhost", "password": "s3cr3t"}).lock(OPTIONS).run()
        self.assertEqual(locked.data, {"host": "localhost", "password": None})

        path = self.home / ".config" / "com.example.app" / "app.json"
        self.assertEqual(path.read_text(encoding="utf-8").replace(" ", "").replace("\n", ""),
                         '{"host":"localhost","password":null}')
        self.assertEqual(self.backend.passwords, {("app", "default/db-password"): "s3cr3t"})

        loaded = config.load().run()
        self.assertEqual(loaded.data, {"host": "localhost", "password": None})

        self.transport.calls.clear()
        unlocked = loaded.unlock(OPTIONS)
        self.assertEqual(unlocked.data, {"host": "localhost", "password": "s3cr3t"})
        self.assertEqual(self.transport.commands(), ["unlock"])

    def test_load_unlock_in_one_call(self) -> None:
        """Test LazyConfigEntry.unlock issues a single load."""
        config = self.make()
        config.create({"host": "localhost", "password": "s3cr3t"}).lock(OPTIONS).run()
        self.transport.calls.clear()
        unlocked = config.load().unlock(OPTIONS)
        self.assertEqual(unlocked.data["password"], "s3cr3t")
        self.assertEqual(self.transport.commands(), ["load"])


class TestConfigurate(ClientTestCase):
    """Tests for Configurate."""

    def test_secrets_dropped_without_options(self) -> None:
        """Test that create without lock never sends the secret."""
        config = self.make()
        config.create({"host": "localhost", "password": "s3cr3t"}).run()
        command, payload = self.transport.calls[0]
        self.assertEqual(payload["data"], {"host": "localhost", "password": None})
        self.assertNotIn("keyringEntries", payload)
        self.assertEqual(self.backend.passwords, {})

    def test_payload_shape(self) -> None:
        """Test the camelCase payload for create."""
        config = self.make(name="app.bin", format="binary", encryption_key="k", dir_name="other", path="p")
        config.create({"host": "h", "password": "pw"}).lock(OPTIONS).run()
        _, payload = self.transport.calls[0]
        self.assertEqual(payload["dir"], 13)
        self.assertEqual(payload["dirName"], "other")
        self.assertEqual(payload["path"], "p")
        self.assertEqual(payload["encryptionKey"], "k")
        self.assertFalse(payload["withUnlock"])
        self.assertEqual(payload["keyringEntries"], [
            {"id": "db-password", "dotpath": "password", "value": "pw", "kind": "string"},
        ])
        self.assertEqual(payload["keyringOptions"], {"service": "app", "account": "default"})

    def test_create_unlock_returns_unlocked(self) -> None:
        """Test create(...).unlock(options)."""
        unlocked = self.make().create({"host": "h", "password": "pw"}).unlock(OPTIONS)
        self.assertEqual(unlocked.data, {"host": "h", "password": "pw"})
        self.assertEqual(self.backend.calls_of("get"), [])

    def test_save_then_load(self) -> None:
        """Test save overwrites."""
        config = self.make()
        config.create({"host": "a", "password": "one"}).lock(OPTIONS).run()
        config.save({"host": "b", "password": "two"}).lock(OPTIONS).run()
        self.assertEqual(config.load().unlock(OPTIONS).data, {"host": "b", "password": "two"})

    def test_delete_removes_everything(self) -> None:
        """Test delete with options removes file and secrets."""
        config = self.make()
        config.create({"host": "a", "password": "one"}).lock(OPTIONS).run()
        self.transport.calls.clear()
        config.delete(OPTIONS)
        self.assertEqual(self.transport.commands(), ["delete"])
        self.assertEqual(self.backend.passwords, {})
        config.delete(OPTIONS)

    def test_unlock_missing_secret(self) -> None:
        """Test that unlocking fails when a secret is absent."""
        config = self.make()
        config.create({"host": "a", "password": "one"}).run()
        with self.assertRaises(SecretNotFoundError):
            config.load().run().unlock(OPTIONS)

    def test_unlock_without_secrets_skips_transport(self) -> None:
        """Test that a schema with no secrets unlocks locally."""
        config = Configurate({"host": str}, name="plain.yaml", dir=BaseDirectory.APP_CONFIG,
                             format="yaml", transport=self.transport)
        config.create({"host": "h"}).run()
        locked = config.load().run()
        self.transport.calls.clear()
        self.assertEqual(locked.unlock(OPTIONS).data, {"host": "h"})
        self.assertEqual(self.transport.calls, [])

    def test_construction_validation(self) -> None:
        """Test that invalid options fail before any call."""
        with self.assertRaises(ConfigurationError):
            self.make(format="json", encryption_key="k")
        with self.assertRaises(ConfigurationError):
            self.make(format="toml")
        with self.assertRaises(ConfigurationError):
            self.make(dir=99)
        with self.assertRaises(InvalidPathError):
            self.make(name="..")
        with self.assertRaises(InvalidPathError):
            self.make(dir_name="a/../b")
        with self.assertRaises(InvalidPathError):
            self.make(dir_name=5)
        with self.assertRaises(InvalidPathError):
            self.make(path=5)
        with self.assertRaises(ConfigurationError):
            Configurate({"a": keyring(str, id="x"), "b": keyring(str, id="x")},
                        name="a.json", dir=BaseDirectory.HOME, format="json", transport=self.transport)
        self.assertEqual(self.transport.calls, [])

    def test_default_transport_is_lazy(self) -> None:
        """Test that constructing a Configurate does not build a service."""
        config = Configurate(self.schema, name="app.json", dir=BaseDirectory.APP_CONFIG, format="json")
        self.assertIsNone(config._transport)


class TestDefaultKeyringOptions(ClientTestCase):
    """Tests for keyring options taken from the constructor or settings."""

    def setUp(self) -> None:
        """Point settings at a keyring service of their own."""
        super().setUp()
        settings = Settings(keyring=KeyringSettings(service="from-settings", account="acct"))
        self.settings_patch = patch("configurate.client.load_settings", return_value=settings)
        self.load_settings = self.settings_patch.start()

    def tearDown(self) -> None:
        """Stop patching settings."""
        self.settings_patch.stop()
        super().tearDown()

    def test_constructor_options_used_by_lock(self) -> None:
        """Test lock() with no arguments uses the Configurate options."""
        config = self.make(keyring_options=OPTIONS)
        config.create({"host": "h", "password": "pw"}).lock().run()
        self.assertEqual(self.backend.passwords, {("app", "default/db-password"): "pw"})
        self.load_settings.assert_not_called()

    def test_settings_options_used_by_unlock_and_delete(self) -> None:
        """Test that options come from settings when none are given."""
        config = self.make()
        config.create({"host": "h", "password": "pw"}).lock().run()
        self.assertEqual(self.backend.passwords, {("from-settings", "acct/db-password"): "pw"})

        self.assertEqual(config.load().run().unlock().data, {"host": "h", "password": "pw"})
        self.assertEqual(config.load().unlock().data["password"], "pw")

        config.delete()
        self.assertEqual(self.backend.passwords, {})
        self.load_settings.assert_called_once_with()

    def test_explicit_options_win(self) -> None:
        """Test that options passed to lock() override the defaults."""
        config = self.make(keyring_options=KeyringOptions("other", "default"))
        config.create({"host": "h", "password": "pw"}).lock(OPTIONS).run()
        self.assertEqual(self.backend.passwords, {("app", "default/db-password"): "pw"})

    def test_run_without_lock_still_drops_secrets(self) -> None:
        """Test that run() alone never stores secrets."""
        config = self.make(keyring_options=OPTIONS)
        config.create({"host": "h", "password": "pw"}).run()
        self.assertEqual(self.backend.passwords, {})

    def test_no_settings_load_without_secrets(self) -> None:
        """Test that a secret-free schema never reads settings."""
        config = Configurate({"host": str}, name="plain.json", dir=BaseDirectory.APP_CONFIG,
                             format="json", transport=self.transport)
        config.create({"host": "h"}).run()
        self.assertEqual(config.load().run().unlock().data, {"host": "h"})
        config.delete()
        self.load_settings.assert_not_called()


class TestUnlockedConfig(unittest.TestCase):
    """Tests for UnlockedConfig."""

    def test_lock_clears_data(self) -> None:
        """Test lock clears nested data and blocks access."""
        nested = {"password": "s3cr3t"}
        data = {"database": nested, "list": [{"k": "v"}]}
        unlocked = UnlockedConfig(data)
        unlocked.lock()
        self.assertTrue(unlocked.is_locked)
        self.assertEqual(nested, {})
        self.assertEqual(data, {})
        with self.assertRaises(ConfigurateError):
            unlocked.data
        unlocked.lock()

    def test_context_manager_locks_on_exit(self) -> None:
        """Test with-block release."""
        with UnlockedConfig({"a": 1}) as unlocked:
            self.assertEqual(unlocked.data, {"a": 1})
        self.assertTrue(unlocked.is_locked)

    def test_repr_hides_data(self) -> None:
        """Test that repr never shows values."""
        self.assertNotIn("s3cr3t", repr(UnlockedConfig({"p": "s3cr3t"})))


class TestConfigurateFactory(unittest.TestCase):
    """Tests for ConfigurateFactory."""

    def setUp(self) -> None:
        """Create a factory with defaults."""
        self.transport = MagicMock()
        self.factory = ConfigurateFactory(
            dir=BaseDirectory.APP_CONFIG,
            format="yaml",
            dir_name="shared",
            path="profiles",
            transport=self.transport,
        )
        self.schema = define_config({"host": str})

    def test_string_form_inherits_defaults(self) -> None:
        """Test that a plain filename inherits dir_name and path."""
        config = self.factory.build(self.schema, "app.yaml")
        self.assertEqual((config.name, config.dir_name, config.path), ("app.yaml", "shared", "profiles"))
        self.assertEqual(config.dir, BaseDirectory.APP_CONFIG)

    def test_string_form_dir_name_override_and_clear(self) -> None:
        """Test that dir_name can be overridden or cleared."""
        self.assertEqual(self.factory.build(self.schema, "a.yaml", "other").dir_name, "other")
        self.assertIsNone(self.factory.build(self.schema, "a.yaml", None).dir_name)

    def test_build_config_form(self) -> None:
        """Test unset, explicit and cleared overrides in BuildConfig."""
        inherited = self.factory.build(self.schema, BuildConfig("a.yaml"))
        self.assertEqual((inherited.dir_name, inherited.path), ("shared", "profiles"))

        cleared = self.factory.build(self.schema, BuildConfig("a.yaml", dir_name=None, path=None))
        self.assertEqual((cleared.dir_name, cleared.path), (None, None))

        explicit = self.factory.build(self.schema, BuildConfig("a.yaml", path="work"))
        self.assertEqual((explicit.dir_name, explicit.path), ("shared", "work"))

    def test_build_validates(self) -> None:
        """Test that factory-built configs validate like direct ones."""
        with self.assertRaises(InvalidPathError):
            self.factory.build(self.schema, BuildConfig("a.yaml", path="../up"))

    def test_transport_shared(self) -> None:
        """Test that built configs use the factory transport."""
        self.transport.return_value = {"host": "h"}
        config = self.factory.build(self.schema, "app.yaml")
        self.assertEqual(config.load().run().data, {"host": "h"})
        command, payload = self.transport.call_args[0]
        self.assertEqual(command, "load")
        self.assertEqual(payload["dirName"], "shared")

    def test_keyring_options_passed_to_builds(self) -> None:
        """Test that factory keyring options reach built configs."""
        factory = ConfigurateFactory(dir=BaseDirectory.APP_CONFIG, format="yaml",
                                     keyring_options=OPTIONS, transport=self.transport)
        config = factory.build(self.schema, "app.yaml")
        self.assertIs(config._keyring_options_or_default(None), OPTIONS)

    def test_unset_marker(self) -> None:
        """Test the UNSET marker is falsy and a singleton."""
        self.assertFalse(UNSET)
        self.assertIs(type(UNSET)(), UNSET)


if __name__ == "__main__":
    unittest.main()
