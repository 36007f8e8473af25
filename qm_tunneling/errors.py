"""Exceptions raised by the tunneling core."""


class TunnelingError(Exception):
    """Base class for every error raised by :mod:`qm_tunneling`."""


class ConfigurationError(TunnelingError, ValueError):
    """Invalid simulation parameters, detected before any stepping begins."""


class FactorizationError(TunnelingError):
    """The implicit Crank–Nicolson operator could not be factorized safely."""


class SolveError(TunnelingError):
    """A time step produced a non-finite wavefunction.

    ``partial`` holds the result recorded up to (but excluding) the failed
    step, so the snapshots that were computed can still be inspected.
    """

    def __init__(self, message: str, step: int, partial=None):
        super().__init__(message)
        self.step = step
        self.partial = partial
