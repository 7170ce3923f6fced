"""Exception types shared by the agent and the providers."""


class DrawAgentError(Exception):
    """Base class for drawagent errors."""


class ConfigurationError(DrawAgentError):
    """Fatal setup problem: missing credential, conflicting stop sequences, bad template.

    Never retried.
    """


class TransportError(DrawAgentError):
    """The model backend could not be reached or answered with a failure."""


class RunCancelled(DrawAgentError):
    """A cancellation signal was set while a run was in progress."""
