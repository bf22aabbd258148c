"""Error taxonomy shared by the reconciliation engine and its adapters."""

from __future__ import annotations


class BankMirrorError(Exception):
    """Base error for bankmirror failures."""


class ConfigError(BankMirrorError):
    """Missing or invalid configuration."""


class SourceUnavailable(BankMirrorError):
    """The banking service could not be reached or refused our credentials.

    Aborts the whole run. There is no internal retry; the next scheduled run
    tries again.
    """


class DestinationError(BankMirrorError):
    """Base error for budgeting-service failures."""


class DestinationUnavailable(DestinationError):
    """Transient destination failure (network, auth, rate limit, 5xx).

    Aborts the remainder of the current batch.
    """


class DestinationRejected(DestinationError):
    """Permanent per-item failure; retrying the same payload will not help."""


class StoreWriteFailed(BankMirrorError):
    """A binding could not be written to the binding store."""


class StoreUnavailable(BankMirrorError):
    """The binding database could not be read, or the run lease not managed.

    Aborts the run: without the ledger the engine cannot tell what is mirrored.
    """


class RunInProgress(BankMirrorError):
    """Another run currently holds the run lock."""
