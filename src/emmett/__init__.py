"""emmett - a small synchronous event emitter.

Handlers are bound to keys, patterns or every key and called in
registration order when a matching key is emitted::

    from emmett import Emitter

    emitter = Emitter()
    emitter.on("saved", lambda event: print(event.key, event.data))
    emitter.emit("saved", {"id": 42})
"""

from emmett.binder import Binder
from emmett.core.constants import KILL_EVENT, VERSION
from emmett.core.exceptions import (
    ConfigurationError,
    EmmettError,
    IllegalStateError,
    InvalidArgumentError,
)
from emmett.core.models import BindOptions, Event
from emmett.core.scope import current_scope
from emmett.emitter import Emitter

__version__ = VERSION

__all__ = [
    "__version__",
    "Binder",
    "BindOptions",
    "Emitter",
    "Event",
    "current_scope",
    "KILL_EVENT",
    # Exceptions
    "EmmettError",
    "ConfigurationError",
    "IllegalStateError",
    "InvalidArgumentError",
]
