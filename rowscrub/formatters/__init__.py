"""Formatter contract, configuration shapes and resolution."""

from .base import Formatter
from .resolver import GeneratorFormatter, GeneratorOnlyFormatter, Resolver
from .spec import (
    Closure,
    FormatterSpec,
    Invokable,
    InvokableTypeName,
    NamedGenerator,
    parse_formatter_spec,
)

__all__ = [
    "Closure",
    "Formatter",
    "FormatterSpec",
    "GeneratorFormatter",
    "GeneratorOnlyFormatter",
    "GeneratorOnlyFormatter",
    "Invokable",
    "InvokableTypeName",
    "NamedGenerator",
    "Resolver",
    "parse_formatter_spec",
]
