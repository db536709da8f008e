"""
Tests for plugin registries and the shipped plugins.
"""
import pytest

from navigator_pubkey.exceptions import KeyGenerationFailed, PluginNotFound
from navigator_pubkey.plugins import (
    AsymmetricKeysGenerator,
    LoginCredentialsProvider,
    PluginRegistry,
    RSAKeys,
    UserPasswords,
    credentials_providers,
    keys_generators,
)


class TestRegistry:
    def test_shipped_plugins(self):
        assert "rsa_keys" in keys_generators
        assert "user_passwords" in credentials_providers
        assert keys_generators.definitions()["rsa_keys"]

    def test_unknown_plugin(self):
        with pytest.raises(PluginNotFound):
            keys_generators.create_instance("dsa_keys")

    def test_register_without_base_class(self):
        registry = PluginRegistry("asymmetric_keys_generator")

        @registry.register("static", "Always the same pair.")
        class StaticKeys:
            def __init__(self, configuration):
                self.pair = configuration["pair"]

            def generate(self):
                return self.pair

        plugin = registry.create_instance("static", {"pair": (b"pub", b"priv")})
        assert isinstance(plugin, AsymmetricKeysGenerator)
        assert plugin.generate() == (b"pub", b"priv")
        registry.unregister("static")
        assert "static" not in registry


class TestRSAKeys:
    def test_generate(self):
        plugin = keys_generators.create_instance("rsa_keys", {"key_size": 1024})
        assert isinstance(plugin, RSAKeys)
        public_key, private_key = plugin.generate()
        assert b"PUBLIC KEY" in public_key
        assert b"PRIVATE KEY" in private_key

    def test_default_key_size(self):
        assert RSAKeys({}).key_size == 2048

    @pytest.mark.parametrize("key_size", [512, 1000, "big"])
    def test_invalid_key_size(self, key_size):
        with pytest.raises(KeyGenerationFailed):
            RSAKeys({"key_size": key_size}).generate()


class TestUserPasswords:
    @pytest.fixture
    def provider(self):
        return credentials_providers.create_instance("user_passwords")

    def test_protocol(self, provider):
        assert isinstance(provider, UserPasswords)
        assert isinstance(provider, LoginCredentialsProvider)

    def test_login(self, provider):
        assert provider.fetch_login_credentials({"pass": "secret"}) == "secret"
        assert provider.fetch_login_credentials({"pass": ""}) is None

    def test_changed(self, provider):
        assert provider.fetch_changed_login_credentials(
            {"current_pass": "old", "pass": "new"}
        ) == ("old", "new")

    def test_unchanged(self, provider):
        assert provider.fetch_changed_login_credentials(
            {"current_pass": "same", "pass": "same"}
        ) is None
