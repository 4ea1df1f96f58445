"""Exceptions raised by the Azimuth sync engine."""


class AzimuthError(Exception):
    """Base exception for all sync errors."""


class AzimuthIOError(AzimuthError):
    """Local filesystem failure (unreadable file, permission denied, disk full)."""


class AzimuthRemoteError(AzimuthError):
    """Remote storage failure (network, non-2xx status, malformed response)."""


class AzimuthAuthenticationError(AzimuthRemoteError):
    """Credentials were rejected or have expired."""


class AzimuthPermissionError(AzimuthRemoteError):
    """The credentials do not grant access to the requested resource."""


class AzimuthNotFoundError(AzimuthRemoteError):
    """Remote object or folder does not exist."""


class AzimuthRateLimitError(AzimuthRemoteError):
    """Provider rejected the request because of rate limiting."""


class AzimuthNetworkError(AzimuthRemoteError):
    """Transport-level failure talking to the provider."""


class AzimuthInvalidResponseError(AzimuthRemoteError):
    """Provider returned a response that could not be understood."""


class AzimuthInvalidArgumentError(AzimuthError, ValueError):
    """Invalid input such as an unknown conflict resolution kind."""


class AzimuthConfigError(AzimuthError):
    """Sync configuration is missing, disabled or incomplete."""


class AzimuthSyncInProgressError(AzimuthError):
    """Another sync run already holds the same root and provider."""
