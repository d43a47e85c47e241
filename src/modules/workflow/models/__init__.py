from .workflow import Workflow, WorkflowAction, ActionType

__all__ = ['Workflow', 'WorkflowAction', 'ActionType']
