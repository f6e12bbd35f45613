"""Exceptions raised by the monitoring engine.

Network-level failures (timeouts, refused connections, NXDOMAIN, TLS errors)
are never raised. Probes fold them into an unreachable ``ProbeResult``.
"""


class ConfigurationError(ValueError):
    """Monitor parameters are missing or invalid."""


class UnexpectedProbeError(RuntimeError):
    """The checker itself broke while probing a target."""

    def __init__(self, check_type: str, target: str, original: BaseException):
        super().__init__(
            f"{check_type} probe of {target} failed unexpectedly: "
            f"{type(original).__name__}: {original}"
        )
        self.check_type = check_type
        self.target = target
        self.original = original
