"""Exception types raised by the moderation core."""


class ModerationError(Exception):
    """Base class for enforcement failures."""


class ModerationPermissionError(ModerationError):
    """The agent lacks a capability, or the target outranks or administers.

    Terminal: never retried.
    """


class ModerationActionError(ModerationError):
    """A platform call kept failing after the retry budget was spent."""
