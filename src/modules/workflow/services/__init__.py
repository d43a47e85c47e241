from .workflow_service import WorkflowService
from .state_machine import WorkflowState, Transition, normalize_action, transition
from .comment_visibility import DecodedComment, encode_comment, decode_comment, is_visible_to, filter_comments

__all__ = [
    'WorkflowService', 'WorkflowState', 'Transition', 'normalize_action', 'transition',
    'DecodedComment', 'encode_comment', 'decode_comment', 'is_visible_to', 'filter_comments'
]
