"""Error taxonomy shared by catalog providers, tools, and the orchestrator."""

from __future__ import annotations


class DesignAssistantError(Exception):
    """Base class for errors raised inside the assistant."""


class UpstreamUnavailableError(DesignAssistantError):
    """An external provider (design API, story catalog, completion service) failed."""


class InvalidReferenceError(DesignAssistantError):
    """A design-file link could not be parsed into a file key and node id."""


class UnknownToolError(DesignAssistantError):
    """The model asked for a tool that is not registered."""
