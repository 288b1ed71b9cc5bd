"""
Exception hierarchy for the patch engine and its gateways.
"""


class ChatPatchError(Exception):
    """Base class for every error raised by chatpatch."""


class OperationCancelled(ChatPatchError):
    """Raised when an in-flight operation is cancelled through its token."""


class CompletionError(ChatPatchError):
    """Raised by a completion gateway when no reply could be obtained."""


class NetworkError(CompletionError):
    """Transport-level failure (connection refused, timeout, 5xx ...)."""


class UnauthorizedError(CompletionError):
    """The provider rejected the configured credentials (401/403)."""


class UnknownEditError(ChatPatchError, KeyError):
    """No pending edit exists with the requested id."""

    def __str__(self) -> str:
        return f"Unknown pending edit: {self.args[0] if self.args else '?'}"


class EditApplyError(ChatPatchError):
    """Writing or deleting the target of an accepted edit failed.

    The edit stays pending; accepting it again retries the operation.
    """

    def __init__(self, edit_id: str, path: str, cause: BaseException):
        super().__init__(f"Failed to apply edit to {path}: {cause}")
        self.edit_id = edit_id
        self.path = path
        self.cause = cause
