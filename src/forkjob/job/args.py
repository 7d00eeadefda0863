# job/args.py
"""Command-line argument schemas for jobs."""
from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

__all__ = ["ArgSpec", "ArgsError", "parse_args", "format_usage"]


@dataclass(frozen=True)
class ArgSpec:
    """
    One declared job argument.

    Names starting with ``--`` are named flags, all others are positional
    in declaration order. ``validate`` receives the parsed value (None when
    absent and without default) and returns an error message or None.
    """

    name: str
    validate: Optional[Callable[[Any], Optional[str]]] = None
    default: Any = None
    aliases: Tuple[str, ...] = ()
    optional: bool = False

    @property
    def named(self) -> bool:
        return self.name.startswith("--")

    @property
    def dest(self) -> str:
        return self.name.lstrip("-").replace("-", "_")


class ArgsError(ValueError):
    """One or more arguments failed validation."""


def format_usage(script_name: str, specs: Sequence[ArgSpec]) -> str:
    """Usage line: ``<required>`` and ``[optional]`` args, flags with aliases."""
    usage = f"Usage: python {script_name}"
    positional = [s for s in specs if not s.named]
    named = [s for s in specs if s.named]
    for spec in positional:
        usage += f" [{spec.name}]" if spec.optional else f" <{spec.name}>"
    for spec in named:
        names = "|".join((spec.name, *spec.aliases))
        usage += f" [{names}]" if spec.optional else f" <{names}>"
    return usage


def parse_args(specs: Sequence[ArgSpec], argv: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """
    Parse ``argv`` against ``specs``.

    Flags given without a value are True. Unknown arguments are ignored.

    Raises:
        ArgsError: If any validator returns a message
    """
    parser = argparse.ArgumentParser(add_help=False, allow_abbrev=False)
    for spec in specs:
        if spec.named:
            parser.add_argument(
                spec.name, *spec.aliases, dest=spec.dest, nargs="?", const=True, default=None
            )
        else:
            parser.add_argument(spec.dest, nargs="?", default=None)

    namespace, _unknown = parser.parse_known_args(argv)

    args: Dict[str, Any] = {}
    errors: List[str] = []
    for spec in specs:
        value = getattr(namespace, spec.dest)
        if value is None and spec.default is not None:
            value = spec.default
        if spec.validate is not None:
            message = spec.validate(value)
            if message:
                errors.append(f'"{spec.dest}": {message}')
        args[spec.dest] = value

    if errors:
        raise ArgsError("; ".join(errors))
    return args
