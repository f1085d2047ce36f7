"""Failure taxonomy shared by the game client and the score server.

Every failure is terminal for the single operation that raised it. Nothing
here is retried automatically; callers decide what to do next.
"""


class MinigameError(Exception):
    """Base class. ``reason`` is the stable string used in error acks."""

    reason = 'error'

    def __init__(self, message=None):
        super().__init__(message or self.reason)


class InputError(MinigameError):
    """Unrecognized key code. Never surfaced to the player."""

    reason = 'unknown_input'


class NotConnectedError(MinigameError):
    """A score push was attempted without a joined channel."""

    reason = 'not_connected'


class WriteError(MinigameError):
    """The gameplay record could not be persisted."""

    reason = 'write_failed'


class AuthContextMissing(MinigameError):
    """The socket has no game/player identity bound at join time."""

    reason = 'unauthorized'


class InvalidPayload(MinigameError):
    """A score message that does not carry a usable ``player_score``."""

    reason = 'invalid_payload'
