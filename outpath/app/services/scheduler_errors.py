#
# Scheduler and repository error types.
#
from __future__ import annotations


class OperationFailed(Exception):
    """A repository or identity operation could not be carried out."""


class AccessControlError(OperationFailed):
    """The acting user lacks permission for a repository operation."""


class UnknownIdentity(OperationFailed):
    def __init__(self, username: str):
        super().__init__(f"unknown_or_disabled_identity: {username}")
        self.username = username


class SchedulerError(Exception):
    pass


class SchedulingNotAllowed(SchedulerError):
    """Folder metadata explicitly forbids scheduling for an authorized user."""

    def __init__(self, job_name: str, action_user: str):
        super().__init__(
            f"Scheduling is not allowed: job '{job_name}' of user '{action_user}' "
            "targets a folder that is not schedulable"
        )
        self.job_name = job_name
        self.action_user = action_user
