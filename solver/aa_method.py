"""
Method selection for Anderson acceleration.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType


class MethodName(str, Enum):
    VANILLA = "vanilla"
    PAQR = "paqr"
    FAA = "faa"

    @classmethod
    def coerce(cls, name):
        """Map a string (or MethodName) onto the enum, ValueError if unsupported."""
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).lower().lstrip(":"))
        except ValueError:
            raise ValueError(f"Unsupported methodname: {name}") from None


DEFAULT_PARAMS = {
    MethodName.VANILLA: {"m": 2},
    MethodName.PAQR: {"threshold": 1e-10},
    MethodName.FAA: {"m": 5, "cs": 0.1, "kappabar": 1e8},
}


@dataclass(frozen=True)
class AAMethod:
    """
    Immutable method configuration.

    vanilla reads m (window size), paqr reads threshold (pivot tolerance),
    faa reads m, cs (filtering constant) and kappabar (condition bound).
    Parameters not given fall back to DEFAULT_PARAMS.
    """

    methodname: MethodName
    methodparams: dict = field(default_factory=dict)

    def __post_init__(self):
        name = MethodName.coerce(self.methodname)
        params = dict(DEFAULT_PARAMS[name])
        params.update(self.methodparams or {})
        object.__setattr__(self, "methodname", name)
        object.__setattr__(self, "methodparams", MappingProxyType(params))

    def param(self, key):
        return self.methodparams[key]

    @classmethod
    def vanilla(cls, m=2):
        return cls(MethodName.VANILLA, {"m": m})

    @classmethod
    def paqr(cls, threshold=1e-10):
        return cls(MethodName.PAQR, {"threshold": threshold})

    @classmethod
    def faa(cls, m=5, cs=0.1, kappabar=1e8):
        return cls(MethodName.FAA, {"m": m, "cs": cs, "kappabar": kappabar})
