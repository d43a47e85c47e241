"""
Pure transition rules of the approval workflow.

A workflow is the pair (current_step, is_completed) over an ordered list of
reviewer roles. approve/forward advance one step and complete the workflow
after the last one; reject completes it immediately without advancing.
"""
from dataclasses import dataclass
from typing import Optional

from modules.documents.models.document import DocumentStatus
from modules.workflow.errors import InvalidActionError, WorkflowCompletedError
from modules.workflow.models.workflow import ActionType

REVIEW_ACTIONS = {
    "approve": ActionType.APPROVED,
    "forward": ActionType.FORWARDED,
    "reject": ActionType.REJECTED,
}


@dataclass(frozen=True)
class WorkflowState:
    current_step: int
    total_steps: int
    is_completed: bool = False

    @classmethod
    def of(cls, workflow) -> "WorkflowState":
        return cls(workflow.current_step, workflow.total_steps, workflow.is_completed)


@dataclass(frozen=True)
class Transition:
    state: WorkflowState
    # None while the document stays in review
    document_status: Optional[DocumentStatus]


def normalize_action(action) -> ActionType:
    """Map a reviewer keyword (approve/forward/reject) to the recorded action."""
    if isinstance(action, ActionType) and action in REVIEW_ACTIONS.values():
        return action
    key = str(action or "").strip().lower()
    if key not in REVIEW_ACTIONS:
        raise InvalidActionError(action)
    return REVIEW_ACTIONS[key]


def transition(state: WorkflowState, action: ActionType, workflow_id=None) -> Transition:
    if state.is_completed:
        raise WorkflowCompletedError(workflow_id)

    if action == ActionType.REJECTED:
        return Transition(
            WorkflowState(state.current_step, state.total_steps, True),
            DocumentStatus.REJECTED,
        )

    if action in (ActionType.APPROVED, ActionType.FORWARDED):
        next_step = state.current_step + 1
        if next_step >= state.total_steps:
            return Transition(
                WorkflowState(next_step, state.total_steps, True),
                DocumentStatus.APPROVED,
            )
        return Transition(WorkflowState(next_step, state.total_steps, False), None)

    raise InvalidActionError(action)
