"""Turns formatter configuration into callables."""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..errors import UnresolvableTypeError
from .base import Formatter
from .spec import (
    Arg,
    Closure,
    FormatterSpec,
    Invokable,
    InvokableTypeName,
    NamedGenerator,
    parse_formatter_spec,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratorFormatter:
    """Calls a generator capability; the name is looked up on every call."""

    name: str
    args: tuple[Arg, ...] = ()

    def __call__(self, generator: Any, target: Any) -> Any:
        return generator.invoke(self.name, self.args)


@dataclass(frozen=True)
class GeneratorOnlyFormatter:
    """Adapts a closure that only takes the generator."""

    func: Callable[[Any], Any]

    def __call__(self, generator: Any, target: Any) -> Any:
        return self.func(generator)


class Resolver:
    """Resolve formatter specs for one scrub run.

    Type names are imported and instantiated the first time they are
    resolved; the instance is kept and shared by every table and field that
    names the same type.
    """

    def __init__(self) -> None:
        self._instances: dict[str, Formatter] = {}

    def resolve(self, spec: FormatterSpec) -> Formatter:
        if isinstance(spec, NamedGenerator):
            return GeneratorFormatter(spec.name, tuple(spec.args))
        if isinstance(spec, Invokable):
            return spec.instance
        if isinstance(spec, Closure):
            return spec.func if spec.takes_target else GeneratorOnlyFormatter(spec.func)
        if isinstance(spec, InvokableTypeName):
            return self._instance(spec.name)
        raise TypeError(f"not a formatter spec: {spec!r}")

    def resolve_raw(self, raw: Any) -> Formatter:
        return self.resolve(parse_formatter_spec(raw))

    def _instance(self, name: str) -> Formatter:
        cached = self._instances.get(name)
        if cached is not None:
            return cached
        cls = _import_type(name)
        try:
            instance = cls()
        except Exception as exc:
            raise UnresolvableTypeError(f"cannot construct formatter {name!r}: {exc}") from exc
        if not callable(instance):
            raise UnresolvableTypeError(f"formatter {name!r} instances are not callable")
        logger.debug(
            "formatter_type_loaded %s", name, extra={"event_type": "formatter_type_loaded"}
        )
        self._instances[name] = instance
        return instance


def _import_type(name: str) -> type:
    module_name, _, attr = name.rpartition(".")
    if not module_name or not attr:
        raise UnresolvableTypeError(f"{name!r} is not a dotted path")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise UnresolvableTypeError(f"cannot import module for {name!r}: {exc}") from exc
    cls = getattr(module, attr, None)
    if not isinstance(cls, type):
        raise UnresolvableTypeError(f"{name!r} does not name a class")
    if "__call__" not in dir(cls):
        raise UnresolvableTypeError(f"{name!r} does not define __call__")
    return cls
