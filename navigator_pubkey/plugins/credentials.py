"""
Login credentials providers.

A provider extracts, from a submitted form, the credential protecting a
principal's private key: at login, and when the credential changes.
"""
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

from .registry import PluginRegistry

credentials_providers = PluginRegistry("login_credentials_provider")


@runtime_checkable
class LoginCredentialsProvider(Protocol):
    def fetch_login_credentials(self, form: Mapping[str, Any]) -> Optional[str]:
        ...

    def fetch_changed_login_credentials(
        self,
        form: Mapping[str, Any],
    ) -> Optional[tuple[str, str]]:
        ...


@credentials_providers.register(
    "user_passwords", "A login credentials provider based on users login passwords."
)
class UserPasswords:
    """Reads the login password (``pass``) and, on account edit, the
    current password (``current_pass``)."""

    password_field = "pass"
    current_password_field = "current_pass"

    def __init__(self, configuration: dict[str, Any]):
        self.configuration = configuration

    def fetch_login_credentials(self, form: Mapping[str, Any]) -> Optional[str]:
        return form.get(self.password_field) or None

    def fetch_changed_login_credentials(
        self,
        form: Mapping[str, Any],
    ) -> Optional[tuple[str, str]]:
        new = form.get(self.password_field)
        current = form.get(self.current_password_field)
        if not new or not current or new == current:
            return None
        return current, new
