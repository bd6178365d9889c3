"""Normalization of the public call signatures.

``on``, ``off`` and ``emit`` accept several positional shapes (a key, a
list of keys, a compiled pattern, a mapping, or a bare handler). Each shape
is resolved here into a flat call object so the emitter itself only ever
deals with ``(key, handler)`` or ``(key, data)`` pairs. Every check runs
before anything is returned, which keeps rejection atomic: the emitter is
never touched by a call that fails here.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from emmett.core.exceptions import InvalidArgumentError
from emmett.core.models import BindOptions, Handler


class CallShape(str, Enum):
    """The positional shape a call was made with."""

    SINGLE_KEY = "single_key"
    KEY_LIST = "key_list"
    PATTERN = "pattern"
    MAPPING = "mapping"
    WILDCARD = "wildcard"


@dataclass(frozen=True)
class BindCall:
    """A resolved ``on`` / ``once`` call.

    ``pairs`` holds one ``(key, handler)`` per registration; the key is
    ``None`` for a wildcard handler and a compiled pattern for pattern
    bindings.
    """

    shape: CallShape
    pairs: tuple[tuple[Hashable | None, Handler], ...]
    options: BindOptions


@dataclass(frozen=True)
class OffCall:
    """A resolved ``off`` call.

    Each pair is read as follows: ``(None, handler)`` removes the handler
    everywhere, ``(key, None)`` clears the key, ``(key, handler)`` removes
    the handler from that key only.
    """

    shape: CallShape
    pairs: tuple[tuple[Hashable | None, Handler | None], ...]


@dataclass(frozen=True)
class EmitCall:
    """A resolved ``emit`` call: ``(key, data)`` pairs in emission order."""

    shape: CallShape
    pairs: tuple[tuple[Hashable, Any], ...]


def _is_key_list(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def check_key(key: Any, *, allow_pattern: bool = True) -> Hashable:
    """Validate a single event key and return it unchanged."""
    if key is None:
        raise InvalidArgumentError("None is not a valid event key.")
    if isinstance(key, re.Pattern):
        if not allow_pattern:
            raise InvalidArgumentError(
                "A pattern cannot be emitted, only bound to.",
                details={"key": key.pattern},
            )
        return key
    if _is_key_list(key) or isinstance(key, Mapping):
        raise InvalidArgumentError(
            "Nested key collections are not supported.",
            details={"key": repr(key)},
        )
    try:
        hash(key)
    except TypeError as e:
        raise InvalidArgumentError(
            f"Event keys must be hashable, got {type(key).__name__}.",
            details={"key": repr(key)},
        ) from e
    return key


def check_handler(handler: Any) -> Handler:
    if not callable(handler):
        raise InvalidArgumentError(
            f"Handlers must be callable, got {type(handler).__name__}.",
            details={"handler": repr(handler)},
        )
    return handler


def _resolve_keys(target: Any) -> tuple[CallShape, list[Hashable]]:
    if _is_key_list(target):
        return CallShape.KEY_LIST, [check_key(key) for key in target]
    if isinstance(target, re.Pattern):
        return CallShape.PATTERN, [target]
    return CallShape.SINGLE_KEY, [check_key(target)]


def build_options(
    positional: Mapping[Any, Any] | None,
    keywords: Mapping[str, Any],
    *,
    force_once: bool = False,
) -> BindOptions:
    """Merge positional and keyword options into a validated ``BindOptions``."""
    merged: dict[str, Any] = {}
    if positional is not None:
        for name, value in positional.items():
            if not isinstance(name, str):
                raise InvalidArgumentError(
                    "Option names must be strings.", details={"option": repr(name)}
                )
            merged[name] = value
    merged.update(keywords)
    if force_once:
        merged["once"] = True

    try:
        return BindOptions.model_validate(merged)
    except ValidationError as e:
        fields = [".".join(str(loc) for loc in err["loc"]) for err in e.errors()]
        raise InvalidArgumentError(
            f"Invalid binding options: {', '.join(fields)}.",
            details={"options": fields},
        ) from e


def parse_bind_call(
    args: tuple[Any, ...],
    options: Mapping[str, Any],
    *,
    force_once: bool = False,
) -> BindCall:
    """Resolve the arguments of ``on`` / ``once``.

    Supported shapes, each optionally followed by a mapping of options::

        on(key, handler)
        on([key1, key2], handler)
        on(re.compile("^user:"), handler)
        on({key1: handler1, key2: handler2})
        on(handler)
    """
    positional_options: Mapping[Any, Any] | None = None
    if len(args) >= 2 and isinstance(args[-1], Mapping):
        positional_options = args[-1]
        args = args[:-1]

    if len(args) == 1 and isinstance(args[0], Mapping):
        shape = CallShape.MAPPING
        pairs = [(check_key(key), check_handler(fn)) for key, fn in args[0].items()]
    elif len(args) == 1 and callable(args[0]):
        shape = CallShape.WILDCARD
        pairs = [(None, args[0])]
    elif len(args) == 2 and not isinstance(args[0], Mapping):
        handler = check_handler(args[1])
        shape, keys = _resolve_keys(args[0])
        pairs = [(key, handler) for key in keys]
    else:
        raise InvalidArgumentError(
            "Wrong arguments.", details={"args": [type(a).__name__ for a in args]}
        )

    bind_options = build_options(positional_options, options, force_once=force_once)

    # Empty string keys are ignored.
    pairs = [(key, fn) for key, fn in pairs if not (isinstance(key, str) and not key)]

    return BindCall(shape=shape, pairs=tuple(pairs), options=bind_options)


def parse_off_call(args: tuple[Any, ...]) -> OffCall:
    """Resolve the arguments of ``off``.

    A single callable is always read as a handler to remove everywhere. To
    clear a key that happens to be callable (a class, say) pass it inside
    a list.
    """
    if len(args) == 1:
        target = args[0]
        if isinstance(target, Mapping):
            return OffCall(
                shape=CallShape.MAPPING,
                pairs=tuple(
                    (check_key(key), check_handler(fn)) for key, fn in target.items()
                ),
            )
        if callable(target):
            return OffCall(shape=CallShape.WILDCARD, pairs=((None, target),))
        shape, keys = _resolve_keys(target)
        return OffCall(shape=shape, pairs=tuple((key, None) for key in keys))

    if len(args) == 2 and not isinstance(args[0], Mapping):
        handler = check_handler(args[1])
        shape, keys = _resolve_keys(args[0])
        return OffCall(shape=shape, pairs=tuple((key, handler) for key in keys))

    raise InvalidArgumentError(
        "Wrong arguments.", details={"args": [type(a).__name__ for a in args]}
    )


def parse_emit_call(events: Any, data: Any = None) -> EmitCall:
    """Resolve the arguments of ``emit``.

    ``events`` is a key, a list of keys sharing ``data``, or a mapping of
    key to its own payload (in which case ``data`` must be omitted).
    """
    if isinstance(events, Mapping):
        if data is not None:
            raise InvalidArgumentError(
                "A mapping of events already carries its payloads; "
                "data cannot be given as well."
            )
        return EmitCall(
            shape=CallShape.MAPPING,
            pairs=tuple(
                (check_key(key, allow_pattern=False), payload)
                for key, payload in events.items()
            ),
        )
    if _is_key_list(events):
        return EmitCall(
            shape=CallShape.KEY_LIST,
            pairs=tuple((check_key(key, allow_pattern=False), data) for key in events),
        )
    return EmitCall(
        shape=CallShape.SINGLE_KEY,
        pairs=((check_key(events, allow_pattern=False), data),),
    )


def same_handler(registered: Callable[..., Any], candidate: Callable[..., Any]) -> bool:
    """Whether two callables denote the same registration.

    Plain callables compare by identity. Bound methods are rebuilt on every
    attribute access, so they match when they wrap the same function on the
    same instance.
    """
    if registered is candidate:
        return True
    self_a = getattr(registered, "__self__", None)
    func_a = getattr(registered, "__func__", None)
    if self_a is None or func_a is None:
        return False
    return (
        getattr(candidate, "__self__", None) is self_a
        and getattr(candidate, "__func__", None) is func_a
    )
