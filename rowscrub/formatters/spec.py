"""Configuration shapes a formatter can be declared with."""

from __future__ import annotations

import inspect
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from ..errors import ConfigurationError

_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+)(?:[eE][+-]?\d+)?")

Arg = Union[str, bool, int, float, None]


@dataclass(frozen=True)
class NamedGenerator:
    """A generator capability by name, with positional arguments."""

    name: str
    args: tuple[Arg, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Invokable:
    """An object that is already callable as ``(generator, target)``."""

    instance: Callable[..., Any]


@dataclass(frozen=True)
class InvokableTypeName:
    """Dotted import path of a callable class built with no arguments."""

    name: str


def _takes_target(func: Callable[..., Any]) -> bool:
    """False when ``func`` accepts exactly one positional argument."""
    try:
        params = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return True
    positional = 0
    for param in params:
        if param.kind is param.VAR_POSITIONAL:
            return True
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            positional += 1
    return positional != 1


@dataclass(frozen=True)
class Closure:
    """A plain function supplied directly in configuration.

    Functions taking a single positional argument, such as
    ``lambda fake: fake.password()``, are called with the generator only.
    """

    func: Callable[..., Any]
    takes_target: bool = field(init=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "takes_target", _takes_target(self.func))


FormatterSpec = Union[NamedGenerator, Invokable, InvokableTypeName, Closure]


def parse_argument(raw: str) -> Arg:
    """Coerce one ``name:arg,arg`` argument into a Python value."""
    text = raw.strip()
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if lowered in ("null", "none"):
        return None
    if _INT_RE.fullmatch(text):
        return int(text)
    if _FLOAT_RE.fullmatch(text):
        return float(text)
    return text


def _parse_string(raw: str) -> FormatterSpec:
    text = raw.strip()
    if not text:
        raise ConfigurationError("formatter name must not be empty")
    name, sep, arg_text = text.partition(":")
    name = name.strip()
    if "." in name:
        if sep:
            raise ConfigurationError(f"formatter type {name!r} does not take arguments")
        return InvokableTypeName(name)
    if not name:
        raise ConfigurationError(f"missing generator name in {raw!r}")
    args: tuple[Arg, ...] = ()
    if sep and arg_text.strip():
        args = tuple(parse_argument(part) for part in arg_text.split(","))
    return NamedGenerator(name, args)


def parse_formatter_spec(raw: Any) -> FormatterSpec:
    """Classify a raw configuration value into one of the formatter shapes.

    ``"safeEmail"`` and ``"words:3,true"`` name generator capabilities,
    ``"package.module.Class"`` names a callable class, ``["words", 3, True]``
    is the sequence form of a named generator, functions become closures and
    other callable objects are used as they are.
    """

    if isinstance(raw, (NamedGenerator, Invokable, InvokableTypeName, Closure)):
        return raw
    if isinstance(raw, str):
        return _parse_string(raw)
    if isinstance(raw, (list, tuple)):
        if not raw or not isinstance(raw[0], str) or "." in raw[0] or not raw[0].strip():
            raise ConfigurationError(
                f"sequence formatter must start with a generator name, got {raw!r}"
            )
        return NamedGenerator(raw[0].strip(), tuple(raw[1:]))
    if isinstance(raw, type):
        raise ConfigurationError(
            f"formatter class {raw.__qualname__} must be configured by its dotted path"
        )
    if inspect.isfunction(raw) or inspect.ismethod(raw) or inspect.isbuiltin(raw):
        return Closure(raw)
    if isinstance(raw, Mapping):
        raise ConfigurationError("a mapping is not a formatter")
    if callable(raw):
        return Invokable(raw)
    raise ConfigurationError(f"unsupported formatter configuration: {raw!r}")
