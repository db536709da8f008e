"""Pluggable strategies, selected by configured id."""

from .registry import PluginRegistry
from .keys import AsymmetricKeysGenerator, RSAKeys, keys_generators
from .credentials import LoginCredentialsProvider, UserPasswords, credentials_providers

__all__ = [
    "PluginRegistry",
    "AsymmetricKeysGenerator",
    "RSAKeys",
    "keys_generators",
    "LoginCredentialsProvider",
    "UserPasswords",
    "credentials_providers",
]
