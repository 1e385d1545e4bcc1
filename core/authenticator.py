"""
The authenticator: secret data plus a synchronised clock, producing codes.

Behaviour that differs between account types (default digit count, whether
an identity/serial is carried, where server time comes from) is described by
a :class:`Flavor` chosen at construction time.  The HMAC math lives in
:mod:`core.hotp` and the text format in :mod:`core.codec`.

Usage::

    auth = Authenticator.battlenet("US-1234-5678-9012", "MTIzNDU2Nzg5MDEyMzQ1Njc4OTA=")
    auth.current_code()   # 8 digits, e.g. "04719583"
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from core import codec, protection
from core.config import Settings
from core.errors import AuthenticatorLockedError, ConfigurationError
from core.hotp import compute_code
from core.sync import Clock, LocalTimeSource, SyncResult, SyncState, SyncStatus, TimeSynchronizer
from core.totp import DEFAULT_PERIOD, HMACVariant, code_interval, current_time_millis, remaining_seconds
from core.utils import decode_base64_secret, validate_digits, validate_period

logger = logging.getLogger(__name__)


class Synchronizer(Protocol):
    def sync(self, region: str, current_offset: int = 0) -> SyncResult: ...


@dataclass(frozen=True)
class Flavor:
    """Per-account-type behaviour."""

    name: str
    digits: int               # default code length
    carries_identity: bool    # identity (serial) is part of the secret data
    network_sync: bool        # server time comes from the region's mobile service


STANDARD = Flavor("standard", digits=6, carries_identity=False, network_sync=False)
BATTLENET = Flavor("battlenet", digits=8, carries_identity=True, network_sync=True)

FLAVORS: dict[str, Flavor] = {f.name: f for f in (STANDARD, BATTLENET)}


def get_flavor(name: str) -> Flavor:
    try:
        return FLAVORS[name.strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown authenticator type '{name}'. Expected one of: {', '.join(FLAVORS)}."
        ) from None


def make_synchronizer(
    flavor: Flavor,
    settings: Optional[Settings] = None,
    clock: Clock = current_time_millis,
) -> Synchronizer:
    """Build the synchronizer ``flavor`` calls for, honouring ``settings``."""
    if not flavor.network_sync:
        return LocalTimeSource(clock=clock)
    settings = settings or Settings()
    if settings.cooldown_scope == "instance":
        state = SyncState(settings.cooldown_minutes)
    else:
        state = SyncState.shared(settings.cooldown_minutes)
    return TimeSynchronizer(state=state, timeout=settings.sync_timeout, clock=clock)


class Authenticator:
    """RFC 4226 / RFC 6238 authenticator with server time correction."""

    def __init__(
        self,
        secret_key: Optional[bytes],
        digits: Optional[int] = None,
        variant: HMACVariant = HMACVariant.SHA1,
        period: int = DEFAULT_PERIOD,
        identity: Optional[str] = None,
        flavor: Flavor = STANDARD,
        synchronizer: Optional[Synchronizer] = None,
        clock: Clock = current_time_millis,
        protected_data: Optional[str] = None,
    ) -> None:
        """
        Args:
            secret_key:     Raw HMAC key, or None to provision later (via
                            :meth:`load_secret_data` or :meth:`unlock`).
            digits:         Code length; the flavor's default if None.
            variant:        HMAC hash function.
            period:         Seconds per code.
            identity:       Account serial for flavors that carry one.
            flavor:         Account type, see :data:`FLAVORS`.
            synchronizer:   Server time source; built from ``flavor`` if None.
            clock:          Local time in epoch milliseconds.
            protected_data: Password-protected secret data (locked start).

        Raises:
            ConfigurationError: Empty secret, bad digits, period or variant.
        """
        self.flavor = flavor
        self.clock = clock
        self.synchronizer = synchronizer or make_synchronizer(flavor, clock=clock)

        self.server_time_offset = 0
        self.last_sync_time: Optional[int] = None
        self._synced = False

        self._secret_key: Optional[bytes] = None
        self._protected_data = protected_data

        digits = flavor.digits if digits is None else digits
        validate_digits(digits)
        validate_period(period)
        self.digits = digits
        self.variant = HMACVariant.parse(variant)
        self.period = period
        self.identity = identity if flavor.carries_identity else None

        if secret_key is not None:
            self._provision(codec.SecretBundle(secret_key, digits, self.variant, period, identity))

    # ── Construction helpers ─────────────────────────────────────────────

    @classmethod
    def from_secret_data(cls, text: str, flavor: Flavor = STANDARD, **kwargs) -> "Authenticator":
        """Build from :mod:`core.codec` text."""
        auth = cls(None, flavor=flavor, **kwargs)
        auth.load_secret_data(text)
        return auth

    @classmethod
    def battlenet(cls, serial: str, secret: str, **kwargs) -> "Authenticator":
        """
        Build a Battle.net authenticator from its serial and base64 secret.

        Codes are 8 digits and server time comes from the serial's region.
        """
        return cls(decode_base64_secret(secret), identity=serial, flavor=BATTLENET, **kwargs)

    @classmethod
    def locked(cls, protected_data: str, flavor: Flavor = STANDARD, **kwargs) -> "Authenticator":
        """Build an authenticator whose secret data needs :meth:`unlock`."""
        return cls(None, flavor=flavor, protected_data=protected_data, **kwargs)

    # ── Secret data ──────────────────────────────────────────────────────

    @property
    def secret_key(self) -> Optional[bytes]:
        return self._secret_key

    @property
    def is_locked(self) -> bool:
        return self._secret_key is None and self._protected_data is not None

    @property
    def region(self) -> str:
        """Region code, taken from the first two characters of the identity."""
        return self.identity[:2] if self.identity else ""

    @property
    def secret_data(self) -> str:
        """Current secret data in :mod:`core.codec` text format."""
        self._require_secret()
        return codec.encode_bundle(self._bundle())

    def load_secret_data(self, text: str) -> codec.SecretFormat:
        """
        Re-provision from codec text, keeping current values as defaults.

        Returns:
            The shape the text was recognised as.
        """
        defaults = codec.SecretBundle(
            secret=b"",
            digits=self.digits,
            variant=self.variant,
            period=self.period,
            identity=self.identity,
        )
        result = codec.decode(text, defaults, allow_legacy=self.flavor.carries_identity)
        if result.bundle.identity is not None and not self.flavor.carries_identity:
            logger.debug("Ignoring identity in %s secret data for a %s account.", result.format.value, self.flavor.name)
        self._provision(result.bundle)
        return result.format

    def protect(self, password: str) -> str:
        """Return the secret data encrypted with ``password``."""
        return protection.protect(self.secret_data, password)

    def unlock(self, password: str) -> None:
        """
        Decrypt protected data and provision from it.

        Raises:
            ProtectionError: Wrong password or corrupted data.
        """
        if self._protected_data is None:
            return
        self.load_secret_data(protection.unprotect(self._protected_data, password))
        self._protected_data = None

    def _provision(self, bundle: codec.SecretBundle) -> None:
        if not bundle.secret:
            raise ConfigurationError("Secret key is missing.")
        validate_digits(bundle.digits)
        validate_period(bundle.period)
        self.variant = HMACVariant.parse(bundle.variant)
        self.digits = bundle.digits
        self.period = bundle.period
        self.identity = bundle.identity if self.flavor.carries_identity else None
        self._secret_key = bytes(bundle.secret)

    def _bundle(self) -> codec.SecretBundle:
        identity = self.identity if self.flavor.carries_identity else None
        return codec.SecretBundle(self._secret_key, self.digits, self.variant, self.period, identity)

    def _require_secret(self) -> bytes:
        if self._secret_key is None:
            if self._protected_data is not None:
                raise AuthenticatorLockedError("Secret data is password-protected; unlock it first.")
            raise ConfigurationError("No secret key has been set.")
        return self._secret_key

    # ── Time ─────────────────────────────────────────────────────────────

    @property
    def is_synced(self) -> bool:
        return self._synced

    @property
    def code_interval(self) -> int:
        """Counter for the current server-adjusted time step."""
        return code_interval(self.period, self.server_time_offset, self.clock())

    def remaining_seconds(self) -> int:
        """Seconds until the current code expires."""
        return remaining_seconds(self.period, self.server_time_offset, self.clock())

    def sync(self) -> SyncResult:
        """
        Synchronise with server time.  Never raises for network problems.

        A failed attempt resets the offset to 0 and leaves the authenticator
        unsynchronised, so a later call retries once the cooldown allows it.
        """
        self._require_secret()
        result = self.synchronizer.sync(self.region, self.server_time_offset)
        if result.status is SyncStatus.SYNCED:
            self.server_time_offset = result.offset
            self.last_sync_time = result.synced_at
            self._synced = True
        elif result.status is SyncStatus.FAILED:
            self.server_time_offset = 0
            self._synced = False
        return result

    def sync_to_interval(self, interval: int) -> None:
        """Set the offset so that ``interval`` is the current code interval."""
        now = self.clock()
        self.server_time_offset = interval * self.period * 1000 - now
        self.last_sync_time = now
        self._synced = True

    # ── Codes ────────────────────────────────────────────────────────────

    def current_code(self, resync: bool = False) -> str:
        """
        Return the code for the current time step.

        Synchronises first when never synced or when ``resync`` is set; a
        failed sync is tolerated and the code is computed with offset 0.

        Raises:
            ConfigurationError: No secret key.
            AuthenticatorLockedError: Secret data still protected.
        """
        secret = self._require_secret()
        if resync or not self._synced:
            self.sync()
        return compute_code(secret, self.variant, self.digits, self.code_interval)

    def code_at(self, timestamp_ms: int) -> str:
        """Code for an arbitrary local time, with the current offset applied."""
        secret = self._require_secret()
        return compute_code(
            secret, self.variant, self.digits,
            code_interval(self.period, self.server_time_offset, timestamp_ms),
        )

    def __repr__(self) -> str:
        return (
            f"Authenticator(flavor={self.flavor.name!r}, digits={self.digits}, "
            f"variant={self.variant.value}, period={self.period}, identity={self.identity!r})"
        )
