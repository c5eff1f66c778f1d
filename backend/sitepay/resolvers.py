import re
from dataclasses import dataclass
from typing import Generic, Iterable, Optional, TypeVar

T = TypeVar("T")

_PARENS = re.compile(r"\(.*?\)")
_SPACES = re.compile(r"\s+")


def normalize_value(value: Optional[str]) -> str:
    """Drop all whitespace."""
    return _SPACES.sub("", value or "").strip()


def normalize_name(value: Optional[str]) -> str:
    """Drop parenthetical parts and all whitespace; case is kept."""
    return normalize_value(_PARENS.sub("", value or ""))


@dataclass
class Resolution(Generic[T]):
    value: Optional[T]
    strategy: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.value is not None


class Resolver(Generic[T]):
    """One step of an ordered fallback lookup."""

    name = "resolver"

    def resolve(self, context) -> Optional[T]:
        """Return the resolved value, or ``None`` when not found.

        Parameters
        ----------
        context:
            Whatever the chain is resolving for; each chain documents
            its own context type.
        """
        raise NotImplementedError


def resolve_first(resolvers: Iterable[Resolver[T]], context) -> Resolution[T]:
    for resolver in resolvers:
        value = resolver.resolve(context)
        if value is not None:
            return Resolution(value=value, strategy=resolver.name)
    return Resolution(value=None)
