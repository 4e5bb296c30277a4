"""Generator capability: named sources of realistic fake values."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import Any, Protocol

from faker import Faker

from .errors import ConfigurationError, UnknownGeneratorError

logger = logging.getLogger(__name__)

_CAMEL_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

# Faker machinery that must not be reachable from configuration.
_RESERVED = frozenset(
    {
        "add_provider",
        "del_arguments",
        "format",
        "get_arguments",
        "get_formatter",
        "get_providers",
        "items",
        "parse",
        "provider",
        "random",
        "seed",
        "seed_instance",
        "seed_locale",
        "set_arguments",
        "set_formatter",
        "unique",
        "optional",
    }
)


class Generator(Protocol):
    def invoke(self, name: str, args: Sequence[Any] = ()) -> Any:  # noqa: D401
        """Produce a value from the capability called ``name``."""


def _snake_case(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


class FakerGenerator:
    """Generator backed by a :class:`faker.Faker` instance.

    Capability names are Faker provider methods. Names written in camelCase
    (``firstName``, ``safeEmail``) are accepted as well. Formatters receive
    this object as their first argument; unknown attributes are looked up on
    the wrapped Faker so ``fake.password()`` works inside closures.
    """

    def __init__(
        self, locale: str | None = None, seed: int | None = None, *, faker: Faker | None = None
    ) -> None:
        self.faker = faker if faker is not None else Faker(locale)
        if seed is not None:
            self.faker.seed_instance(seed)
        self._compat = {
            "words": self._words,
            "sentences": self._sentences,
            "paragraphs": self._paragraphs,
        }

    def __getattr__(self, name: str) -> Any:
        if name == "faker":
            raise AttributeError(name)
        return getattr(self.faker, name)

    def invoke(self, name: str, args: Sequence[Any] = ()) -> Any:
        func = self._lookup(name)
        return func(*args)

    def has(self, name: str) -> bool:
        try:
            self._lookup(name)
        except UnknownGeneratorError:
            return False
        return True

    def _lookup(self, name: str) -> Any:
        if not name or name.startswith("_"):
            raise UnknownGeneratorError(f"unknown generator {name!r}")
        for candidate in dict.fromkeys((name, _snake_case(name))):
            if candidate in _RESERVED:
                continue
            if candidate in self._compat:
                return self._compat[candidate]
            try:
                func = getattr(self.faker, candidate)
            except AttributeError:
                continue
            if callable(func):
                return func
        raise UnknownGeneratorError(f"unknown generator {name!r}")

    # Word-list producers return lists from Faker; columns hold scalars, so
    # these only return text. ``as_text`` must be true when given, as in
    # ``words:3,true``.

    @staticmethod
    def _require_text(name: str, as_text: Any) -> None:
        if not as_text:
            raise ConfigurationError(f"{name} can only produce text; as_text must be true")

    def _words(self, nb: int = 3, as_text: bool = True) -> str:
        self._require_text("words", as_text)
        return " ".join(self.faker.words(nb=int(nb)))

    def _sentences(self, nb: int = 3, as_text: bool = True) -> str:
        self._require_text("sentences", as_text)
        return " ".join(self.faker.sentences(nb=int(nb)))

    def _paragraphs(self, nb: int = 3, as_text: bool = True) -> str:
        self._require_text("paragraphs", as_text)
        return "\n\n".join(self.faker.paragraphs(nb=int(nb)))
