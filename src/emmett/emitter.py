"""In-process event emitter.

Handlers are registered against keys, compiled patterns or every key
(wildcard) and are called synchronously, in registration order, when a
matching key is emitted. Emitters can be chained: a child re-emits on its
parent once its own handlers have run.
"""

from __future__ import annotations

import itertools
import re
import threading
import weakref
from collections.abc import Hashable, Iterable
from typing import Any

from emmett.binder import Binder
from emmett.config.logging import get_logger
from emmett.core.calls import (
    BindCall,
    EmitCall,
    OffCall,
    check_key,
    parse_bind_call,
    parse_emit_call,
    parse_off_call,
    same_handler,
)
from emmett.core.constants import KILL_EVENT, VERSION
from emmett.core.exceptions import IllegalStateError, InvalidArgumentError
from emmett.core.models import BindOptions, Event, Handler, HandlerEntry
from emmett.core.scope import handler_scope

logger = get_logger(__name__)


def _pattern_matches(pattern: re.Pattern, key: Hashable) -> bool:
    # Non-string keys are tested through str(key). A str key against a
    # bytes pattern (or the reverse) never matches.
    subject = key if isinstance(key, (str, bytes)) else str(key)
    try:
        return pattern.search(subject) is not None
    except TypeError:
        return False


class Emitter:
    """Synchronous event emitter."""

    version = VERSION

    def __init__(self, parent: Emitter | None = None) -> None:
        self._lock = threading.RLock()
        self._seq = itertools.count()
        self._handlers: dict[Hashable, list[HandlerEntry]] = {}
        self._handlers_all: list[HandlerEntry] = []
        self._enabled = True
        self._children: list[Emitter] = []
        self._parent_ref: weakref.ReferenceType[Emitter] | None = None
        self._dying = False
        self._killed = False

        if parent is not None:
            if not isinstance(parent, Emitter):
                raise InvalidArgumentError(
                    "Wrong arguments.",
                    details={"parent": type(parent).__name__},
                )
            parent._adopt(self)
            self._parent_ref = weakref.ref(parent)

    def __repr__(self) -> str:
        state = "killed" if self._killed else ("enabled" if self._enabled else "disabled")
        return f"<Emitter {state} keys={len(self._handlers)} wildcard={len(self._handlers_all)}>"

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def killed(self) -> bool:
        return self._killed

    @property
    def parent(self) -> Emitter | None:
        """The parent emitter, or ``None`` if detached or collected."""
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def children(self) -> tuple[Emitter, ...]:
        with self._lock:
            return tuple(self._children)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def on(self, *args: Any, **options: Any) -> Emitter:
        """Bind a handler to one or more keys.

        Accepted shapes::

            emitter.on("saved", handler)
            emitter.on(["saved", "deleted"], handler)
            emitter.on(re.compile(r"^user:"), handler)
            emitter.on({"saved": on_saved, "deleted": on_deleted})
            emitter.on(handler)  # every key

        Options (``once``, ``scope``) are given as keyword arguments or as a
        trailing mapping. Anything else raises ``InvalidArgumentError``
        before the emitter is modified.
        """
        call = self._parse_bind(args, options, force_once=False)
        self._bind(call.pairs, call.options)
        return self

    def once(self, *args: Any, **options: Any) -> Emitter:
        """Same as :meth:`on`, but each handler is removed after it fires."""
        call = self._parse_bind(args, options, force_once=True)
        self._bind(call.pairs, call.options)
        return self

    def _parse_bind(
        self, args: tuple[Any, ...], options: dict[str, Any], *, force_once: bool
    ) -> BindCall:
        self._ensure_alive("on")
        try:
            return parse_bind_call(args, options, force_once=force_once)
        except InvalidArgumentError as e:
            logger.debug("emitter.bind_rejected", error=e.message, **e.details)
            raise

    def _bind(
        self,
        pairs: Iterable[tuple[Hashable | None, Handler]],
        options: BindOptions,
    ) -> list[HandlerEntry]:
        """Append one entry per ``(key, handler)`` pair and return them."""
        entries: list[HandlerEntry] = []
        with self._lock:
            self._ensure_alive("on")
            scope = options.scope if options.has_scope else self
            for key, handler in pairs:
                entry = HandlerEntry(
                    handler=handler,
                    scope=scope,
                    once=options.once,
                    key=key,
                    seq=next(self._seq),
                )
                if entry.is_wildcard:
                    self._handlers_all.append(entry)
                else:
                    self._handlers.setdefault(key, []).append(entry)
                entries.append(entry)

        logger.debug(
            "emitter.bind",
            keys=[_describe_key(entry.key) for entry in entries],
            once=options.once,
        )
        return entries

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def off(self, *args: Any) -> Emitter:
        """Unbind handlers.

        Accepted shapes::

            emitter.off(handler)            # from every key and the wildcards
            emitter.off("saved", handler)
            emitter.off(["saved", "deleted"], handler)
            emitter.off({"saved": on_saved})
            emitter.off("saved")            # every handler of the key
            emitter.off(["saved", "deleted"])

        Removing something that was never bound does nothing.
        """
        self._ensure_alive("off")
        if not args:
            raise InvalidArgumentError(
                "off() needs a key or a handler; use unbind_all() to remove everything."
            )
        call = parse_off_call(args)
        self._unbind(call)
        return self

    def _unbind(self, call: OffCall) -> None:
        removed = 0
        with self._lock:
            self._ensure_alive("off")
            for key, handler in call.pairs:
                if key is None:
                    for registered in list(self._handlers):
                        removed += self._drop(registered, handler)
                    removed += self._drop(None, handler)
                else:
                    removed += self._drop(key, handler)

        logger.debug("emitter.unbind", shape=call.shape.value, removed=removed)

    def _bucket(self, key: Hashable | None) -> list[HandlerEntry]:
        if key is None:
            return self._handlers_all
        return self._handlers.get(key, [])

    def _drop(self, key: Hashable | None, handler: Handler | None) -> int:
        """Remove the entries of *key* matching *handler* (all when ``None``)."""
        bucket = self._bucket(key)
        if not bucket:
            return 0
        kept: list[HandlerEntry] = []
        for entry in bucket:
            if handler is None or same_handler(entry.handler, handler):
                entry.removed = True
            else:
                kept.append(entry)
        removed = len(bucket) - len(kept)
        self._store(key, kept)
        return removed

    def _store(self, key: Hashable | None, entries: list[HandlerEntry]) -> None:
        if key is None:
            self._handlers_all = entries
        elif entries:
            self._handlers[key] = entries
        else:
            self._handlers.pop(key, None)

    def _unbind_entries(self, entries: Iterable[HandlerEntry]) -> None:
        """Remove these exact entries, wherever they are registered."""
        with self._lock:
            for entry in entries:
                if entry.removed:
                    continue
                entry.removed = True
                bucket = self._bucket(entry.key)
                self._store(entry.key, [e for e in bucket if e is not entry])

    def unbind_all(self) -> Emitter:
        """Remove every handler, keeping the enabled state and the hierarchy."""
        with self._lock:
            self._ensure_alive("unbind_all")
            self._clear()
        return self

    def _clear(self) -> None:
        for bucket in self._handlers.values():
            for entry in bucket:
                entry.removed = True
        for entry in self._handlers_all:
            entry.removed = True
        self._handlers = {}
        self._handlers_all = []

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def emit(self, events: Any, data: Any = None) -> Emitter:
        """Emit one or more keys.

        Accepted shapes::

            emitter.emit("saved")
            emitter.emit("saved", {"id": 42})
            emitter.emit(["saved", "indexed"], {"id": 42})
            emitter.emit({"saved": {"id": 42}, "indexed": {"id": 42}})

        Handlers receive an :class:`~emmett.core.models.Event`; ``data``
        defaults to an empty dict. Once every key has been dispatched
        locally the same call is repeated on the parent, if any.
        """
        self._ensure_alive("emit")
        call = parse_emit_call(events, data)
        self._emit(call)
        return self

    def _emit(self, call: EmitCall) -> None:
        with self._lock:
            self._ensure_alive("emit")
            if not self._enabled:
                return
            for key, payload in call.pairs:
                self._dispatch(key, payload)
            parent = self.parent

        if parent is not None:
            logger.debug("emitter.propagate", keys=[_describe_key(k) for k, _ in call.pairs])
            parent._emit(call)

    def _candidates(self, key: Hashable) -> list[HandlerEntry]:
        candidates = list(self._handlers.get(key, ()))
        for registered, bucket in self._handlers.items():
            if isinstance(registered, re.Pattern) and _pattern_matches(registered, key):
                candidates.extend(bucket)
        candidates.extend(self._handlers_all)
        candidates.sort(key=lambda entry: entry.seq)
        return candidates

    def _dispatch(self, key: Hashable, data: Any) -> None:
        # The candidate list is a snapshot: entries bound while it runs wait
        # for the next emission, entries removed while it runs are skipped.
        candidates = self._candidates(key)
        if not candidates:
            return

        event = Event(key=key, data={} if data is None else data, target=self)
        logger.debug("emitter.emit", key=_describe_key(key), handlers=len(candidates))

        fired: list[HandlerEntry] = []
        try:
            for entry in candidates:
                if entry.removed or (entry.once and entry.fired):
                    continue
                entry.fired = True
                fired.append(entry)
                with handler_scope(entry.scope):
                    entry.handler(event)
        finally:
            self._unbind_entries(entry for entry in fired if entry.once)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def enable(self) -> Emitter:
        with self._lock:
            self._ensure_alive("enable")
            self._enabled = True
        return self

    def disable(self) -> Emitter:
        """Make :meth:`emit` a no-op until :meth:`enable` is called."""
        with self._lock:
            self._ensure_alive("disable")
            self._enabled = False
        return self

    def listeners(self, key: Any = None) -> list[Handler]:
        """Return the handlers bound to *key*, or the wildcard handlers.

        Only handlers bound to exactly that key (or that pattern object) are
        listed; patterns matching the key are not.
        """
        if key is not None:
            key = check_key(key)
        with self._lock:
            return [entry.handler for entry in self._bucket(key)]

    # ------------------------------------------------------------------
    # Hierarchy
    # ------------------------------------------------------------------

    def child(self) -> Emitter:
        """Create an emitter whose emissions propagate to this one."""
        return Emitter(parent=self)

    def binder(self, *args: Any, **options: Any) -> Binder:
        """Create a :class:`~emmett.binder.Binder` over this emitter.

        Arguments, if any, are bound right away as with :meth:`on`.
        """
        self._ensure_alive("binder")
        return Binder(self, *args, **options)

    def _adopt(self, child: Emitter) -> None:
        with self._lock:
            self._ensure_alive("child")
            self._children.append(child)

    def _detach(self, child: Emitter) -> None:
        with self._lock:
            self._children = [c for c in self._children if c is not child]

    def kill(self) -> None:
        """Tear the emitter down for good.

        ``KILL_EVENT`` is dispatched to this emitter's own handlers first
        (it is not propagated), then the emitter leaves its parent, kills
        its children depth-first and drops every handler. Any later call
        other than :meth:`listeners` raises ``IllegalStateError``.
        """
        with self._lock:
            if self._killed or self._dying:
                return
            self._dying = True
        try:
            with self._lock:
                if self._enabled:
                    self._dispatch(KILL_EVENT, None)
        finally:
            with self._lock:
                parent = self.parent
                children = self._children
                self._clear()
                self._children = []
                self._parent_ref = None
                self._killed = True

            # Other emitters' locks are only taken once ours is released.
            if parent is not None:
                parent._detach(self)
            for child in children:
                child.kill()

            logger.debug("emitter.kill")

    def _ensure_alive(self, operation: str) -> None:
        if self._killed:
            raise IllegalStateError(
                f"Cannot call {operation}() on a killed emitter.",
                details={"operation": operation},
            )


def _describe_key(key: Hashable | None) -> str:
    if key is None:
        return "*"
    if isinstance(key, re.Pattern):
        return f"/{key.pattern}/"
    return str(key)
