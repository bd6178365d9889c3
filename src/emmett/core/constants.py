"""Process-wide constants."""

VERSION = "1.0.0"

# Reserved key dispatched to an emitter's own listeners when it is killed.
KILL_EVENT = "emitter:kill"
