"""Grouped bindings that can be switched on and off together."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from emmett.config.logging import get_logger
from emmett.core.calls import parse_bind_call, parse_off_call, same_handler
from emmett.core.models import BindOptions, Handler, HandlerEntry

if TYPE_CHECKING:
    from emmett.emitter import Emitter

logger = get_logger(__name__)


@dataclass
class _Binding:
    key: Hashable | None
    handler: Handler
    options: BindOptions
    entry: HandlerEntry | None = None

    @property
    def consumed(self) -> bool:
        # A once binding whose entry already fired will never fire again.
        return self.options.once and self.entry is not None and self.entry.fired


class Binder:
    """A set of bindings on an emitter that can be disabled as a group.

    The binder remembers every binding made through it. ``disable()``
    unregisters them from the emitter without forgetting them, and
    ``enable()`` registers them again.
    """

    def __init__(self, emitter: Emitter, *args: Any, **options: Any) -> None:
        self._emitter = emitter
        self._bindings: list[_Binding] = []
        self._active = True
        if args or options:
            self.on(*args, **options)

    def __repr__(self) -> str:
        state = "active" if self._active else "inactive"
        return f"<Binder {state} bindings={len(self._bindings)}>"

    @property
    def emitter(self) -> Emitter:
        return self._emitter

    @property
    def active(self) -> bool:
        return self._active

    def on(self, *args: Any, **options: Any) -> Binder:
        """Bind through the emitter and remember the bindings. See ``Emitter.on``."""
        self._record(args, options, force_once=False)
        return self

    def once(self, *args: Any, **options: Any) -> Binder:
        self._record(args, options, force_once=True)
        return self

    def _record(
        self, args: tuple[Any, ...], options: dict[str, Any], *, force_once: bool
    ) -> None:
        self._emitter._ensure_alive("on")
        call = parse_bind_call(args, options, force_once=force_once)
        bindings = [
            _Binding(key=key, handler=handler, options=call.options)
            for key, handler in call.pairs
        ]
        if self._active:
            entries = self._emitter._bind(call.pairs, call.options)
            for binding, entry in zip(bindings, entries):
                binding.entry = entry
        self._bindings.extend(bindings)

    def off(self, *args: Any) -> Binder:
        """Forget bindings made through this binder.

        Takes the same shapes as ``Emitter.off`` but only ever touches this
        binder's own bindings. With no argument every binding is forgotten.
        """
        if not args:
            return self.unbind_all()

        self._emitter._ensure_alive("off")
        call = parse_off_call(args)
        kept: list[_Binding] = []
        dropped: list[_Binding] = []
        for binding in self._bindings:
            if any(_matches(binding, key, handler) for key, handler in call.pairs):
                dropped.append(binding)
            else:
                kept.append(binding)
        self._bindings = kept
        self._release(dropped)
        return self

    def unbind_all(self) -> Binder:
        self._emitter._ensure_alive("unbind_all")
        dropped, self._bindings = self._bindings, []
        self._release(dropped)
        return self

    def disable(self) -> Binder:
        """Unregister every binding from the emitter, keeping them for later."""
        if not self._active:
            return self
        self._emitter._ensure_alive("disable")
        self._bindings = [b for b in self._bindings if not b.consumed]
        self._release(self._bindings)
        self._active = False
        logger.debug("binder.disable", bindings=len(self._bindings))
        return self

    def enable(self) -> Binder:
        """Register every remembered binding on the emitter again."""
        if self._active:
            return self
        self._emitter._ensure_alive("enable")
        for binding in self._bindings:
            (binding.entry,) = self._emitter._bind(
                [(binding.key, binding.handler)], binding.options
            )
        self._active = True
        logger.debug("binder.enable", bindings=len(self._bindings))
        return self

    def _release(self, bindings: list[_Binding]) -> None:
        entries = [b.entry for b in bindings if b.entry is not None]
        for binding in bindings:
            binding.entry = None
        if entries:
            self._emitter._unbind_entries(entries)


def _matches(binding: _Binding, key: Hashable | None, handler: Handler | None) -> bool:
    if key is not None and (binding.key is None or binding.key != key):
        return False
    return handler is None or same_handler(binding.handler, handler)
