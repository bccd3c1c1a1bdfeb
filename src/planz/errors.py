"""Error taxonomy for the plan store.

User errors are expected, caller-recoverable conditions (bad identifier, depth
violation, duplicate title). Store errors mean the store could not be used for
this attempt (lock or transaction failure). Each class carries the process exit
status the CLI uses for it.
"""


class PlanzError(Exception):
    """Base class for all planz errors."""

    exit_code: int = 1


class UserError(PlanzError):
    """The caller's input was wrong."""

    exit_code = 1


class NotFoundError(UserError):
    """A project, plan, or node does not exist."""


class AlreadyExistsError(UserError):
    """A plan with that name already exists in the project."""


class DuplicateTitleError(UserError):
    """A sibling already carries the title."""

    def __init__(self, title: str) -> None:
        self.title = title
        super().__init__(f"Duplicate title '{title}' at this level")


class MaxDepthExceededError(UserError):
    """The operation would place a node deeper than the depth limit."""

    def __init__(self, max_depth: int, context: str | None = None) -> None:
        self.max_depth = max_depth
        self.context = context
        msg = f"Max depth of {max_depth} levels exceeded"
        if context:
            msg += f" for '{context}'"
        super().__init__(msg)


class InvalidPathError(UserError):
    """An identifier is malformed or a path does not resolve."""

    def __init__(self, path: str, reason: str | None = None) -> None:
        self.path = path
        msg = f"Invalid path '{path}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidTitleError(UserError):
    """A title is empty or contains the path separator."""

    def __init__(self, title: str) -> None:
        self.title = title
        super().__init__(f"Invalid title '{title}' (empty or contains '/')")


class HasChildrenError(UserError):
    """The node has children and the operation requires a leaf."""

    def __init__(self, identifier: str, hint: str = "") -> None:
        self.identifier = identifier
        msg = f"Node '{identifier}' has children"
        if hint:
            msg += f". {hint}"
        super().__init__(msg)


class StoreError(PlanzError):
    """The plan store is unusable for this attempt."""

    exit_code = 3


class LockError(StoreError):
    """The external write lock could not be acquired."""


class TransactionError(StoreError):
    """A database transaction could not be started, committed, or completed."""
