class WorkflowError(Exception):
    """Base exception for approval workflow errors"""
    pass

class WorkflowNotFoundError(WorkflowError):
    pass

class UnauthorizedError(WorkflowError):
    """The actor is not the assigned reviewer for the current step"""

    def __init__(self, actor_role: str, expected_role):
        self.actor_role = actor_role
        self.expected_role = expected_role
        super().__init__(
            f"Role '{actor_role}' is not authorized for this workflow step "
            f"(expected '{expected_role}')"
        )

class InvalidActionError(WorkflowError):
    def __init__(self, action):
        self.action = action
        super().__init__(f"Invalid action: {action!r}")

class WorkflowCompletedError(WorkflowError):
    """No action is accepted once a workflow reached a terminal state"""

    def __init__(self, workflow_id):
        self.workflow_id = workflow_id
        super().__init__(f"Workflow {workflow_id} is already completed")

class ConcurrentUpdateError(WorkflowError):
    """The workflow changed between read and conditional write"""

    def __init__(self, workflow_id, expected_version: int):
        self.workflow_id = workflow_id
        self.expected_version = expected_version
        super().__init__(
            f"Workflow {workflow_id} was modified concurrently (expected version {expected_version})"
        )
