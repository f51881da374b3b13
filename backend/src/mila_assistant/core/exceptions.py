"""
Failure taxonomy for the assistant pipeline.

Remote failures carry the notice shown to users when the router falls back
to built-in knowledge. None of these ever reach the caller of
``AssistantService.process_query``.
"""

from mila_assistant.core.constants import DEGRADED_NOTICES


class AssistantError(Exception):
    """Base class for assistant errors."""


class RemoteGatewayError(AssistantError):
    """The remote reasoning service could not produce an answer."""

    kind = "transport"

    @property
    def user_message(self) -> str:
        return DEGRADED_NOTICES[self.kind]


class RemoteConfigurationError(RemoteGatewayError):
    """Credential missing or rejected."""

    kind = "configuration"


class RemoteRateLimitError(RemoteGatewayError):
    """The remote service refused the call for quota reasons."""

    kind = "rate_limit"


class RemoteTransportError(RemoteGatewayError):
    """Network failure, timeout or unexpected service error."""

    kind = "transport"


class RemoteEmptyResponse(RemoteGatewayError):
    """The remote service answered with nothing usable."""

    kind = "empty"


class MemoryUnavailable(AssistantError):
    """The memory store is disabled or unreachable."""
