"""Value types shared by the emitter and the binder."""

from __future__ import annotations

from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, StrictBool

if TYPE_CHECKING:
    from emmett.emitter import Emitter


@dataclass(frozen=True)
class Event:
    """What a handler receives when a matching key is emitted.

    Built once per key per ``emit`` call and shared by every handler
    fired for that key.
    """

    key: Hashable
    data: Any
    target: Emitter


Handler = Callable[[Event], Any]


class BindOptions(BaseModel):
    """Options accepted by ``on`` / ``once``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    once: StrictBool = False
    scope: Any = None

    @property
    def has_scope(self) -> bool:
        """Whether ``scope`` was given explicitly (``None`` is a valid scope)."""
        return "scope" in self.model_fields_set


@dataclass(eq=False)
class HandlerEntry:
    """One registration of a handler in an emitter's registry.

    ``key`` is ``None`` for wildcard entries. ``seq`` is the emitter-wide
    registration number used to order candidates of an emission.
    """

    handler: Handler
    scope: Any
    once: bool
    key: Hashable | None
    seq: int
    removed: bool = False
    fired: bool = False

    @property
    def is_wildcard(self) -> bool:
        return self.key is None
