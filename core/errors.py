"""
Exception hierarchy for authsync.

Construction and decode errors propagate to the caller.  Sync errors are
created by :mod:`core.sync`, logged, and reported inside a
:class:`~core.sync.SyncResult`; they never escape ``current_code()``.
"""


class AuthenticatorError(Exception):
    """Base class for every error raised by authsync."""


class ConfigurationError(AuthenticatorError, ValueError):
    """Missing secret key, invalid digit count or invalid period."""


class AuthenticatorLockedError(ConfigurationError):
    """The secret data is still password-protected."""


class UnsupportedHMACVariantError(ConfigurationError):
    """An HMAC variant other than SHA1 / SHA256 / SHA512 was requested."""


class SecretFormatError(AuthenticatorError, ValueError):
    """Encoded secret data could not be parsed."""


class ProtectionError(AuthenticatorError):
    """Wrong password, or protected data that has been tampered with."""


class SyncError(AuthenticatorError):
    """Base class for time synchronisation failures."""


class SyncTransportError(SyncError):
    """Network failure, timeout or non-OK HTTP status."""


class SyncProtocolError(SyncError):
    """The server answered 200 OK with a body of the wrong size."""
