"""Errors raised while making a branch decision."""

from __future__ import annotations


class DecisionError(Exception):
    """Base exception for decision failures."""

    code = "decision_error"
    fatal = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(DecisionError):
    """Required identifiers are missing from the request."""

    code = "invalid_request"


class BranchFetchError(DecisionError):
    """The branch store could not be read."""

    code = "branch_fetch_failed"


class NoBranchesConfiguredError(DecisionError):
    """The workflow has no branches."""

    code = "no_branches_configured"


class NoSuitableBranchError(DecisionError):
    """No branch reached the threshold and no default branch exists."""

    code = "no_suitable_branch"


class LogWriteError(DecisionError):
    """The decision log entry could not be written."""

    code = "log_write_failed"
    fatal = False


class ActionFetchError(DecisionError):
    """The selected branch's actions could not be read."""

    code = "action_fetch_failed"
    fatal = False
