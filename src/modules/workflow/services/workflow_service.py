import logging
from typing import Iterable, List, Optional

from pydantic import ValidationError

from config import PortalSettings, get_settings
from modules.documents.errors import DocumentNotFoundError
from modules.documents.models.document import DocumentStatus
from modules.signatures.errors import NoPlacementForRoleError, SignatureError
from modules.signatures.models.schemas import NormalizedPlacement, StampResult
from modules.signatures.services.placement import PlacementResolver
from modules.signatures.services.stamper import SignatureStamper
from modules.workflow.errors import (
    ConcurrentUpdateError,
    UnauthorizedError,
    WorkflowCompletedError,
    WorkflowNotFoundError,
)
from modules.workflow.models.schemas import ActionOutcome, Actor, AuditEntry
from modules.workflow.models.workflow import ActionType
from modules.workflow.repositories.workflow_repository import WorkflowRepository
from modules.workflow.services.comment_visibility import (
    DecodedComment,
    decode_comment,
    encode_comment,
    filter_comments,
)
from modules.workflow.services.state_machine import WorkflowState, normalize_action, transition

logger = logging.getLogger(__name__)


class WorkflowService:
    """Advances documents through their reviewer chain."""

    def __init__(
        self,
        repository: WorkflowRepository,
        stamper: Optional[SignatureStamper] = None,
        settings: Optional[PortalSettings] = None,
    ):
        self.repository = repository
        self.settings = settings or get_settings()
        self.stamper = stamper or SignatureStamper(
            PlacementResolver(
                default_width=self.settings.SIGNATURE_WIDTH,
                default_height=self.settings.SIGNATURE_HEIGHT,
            ),
            opacity=self.settings.SIGNATURE_OPACITY,
        )

    def submit_action(
        self,
        workflow_id: int,
        actor: Actor,
        action: str,
        comment: Optional[str] = None,
        audience: Optional[str] = None,
        visibility: Optional[Iterable[str]] = None,
        signature_data: Optional[str] = None,
    ) -> ActionOutcome:
        """
        Record a reviewer decision and move the workflow forward.

        The action record, the workflow step and the document status (plus
        the stamped content and hash, if any) are committed together. A
        version conflict rolls everything back and the call is re-run
        against the fresh state.
        """
        attempts = self.settings.MAX_ACTION_ATTEMPTS
        for attempt in range(1, attempts + 1):
            try:
                outcome, stamp = self._apply_action(
                    workflow_id, actor, action, comment, audience, visibility, signature_data
                )
                self.repository.commit()
            except ConcurrentUpdateError as e:
                self.repository.rollback()
                logger.warning("%s (attempt %d/%d)", e, attempt, attempts)
                if attempt == attempts:
                    raise
                continue
            except Exception:
                self.repository.rollback()
                raise

            logger.info(
                "Workflow %s: %s by %s at step %d -> step %d%s",
                workflow_id, outcome.action, actor.role, outcome.step,
                outcome.current_step, " (completed)" if outcome.is_completed else "",
            )
            if stamp is not None:
                self._mirror_file(outcome.document_id, stamp)
            return outcome

    def _apply_action(self, workflow_id, actor, action, comment, audience, visibility, signature_data):
        workflow = self.repository.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
        if workflow.is_completed:
            raise WorkflowCompletedError(workflow_id)
        if actor.role != workflow.current_role:
            raise UnauthorizedError(actor.role, workflow.current_role)

        action_type = normalize_action(action)
        step = workflow.current_step
        result = transition(WorkflowState.of(workflow), action_type, workflow.id)

        document = self.repository.get_document(workflow.document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {workflow.document_id} not found")

        stamp = None
        if signature_data and signature_data.startswith("data:"):
            stamp = self._try_stamp(workflow, document, actor.role, signature_data)

        workflow = self.repository.update_workflow(
            workflow.id,
            {"current_step": result.state.current_step, "is_completed": result.state.is_completed},
            expected_version=workflow.version,
        )
        signature = signature_data or (actor.full_name if action_type == ActionType.APPROVED else None)
        self.repository.append_workflow_action(
            workflow_id=workflow.id,
            user_id=actor.user_id,
            actor_role=actor.role,
            action=action_type,
            step=step,
            comment=encode_comment(comment, audience, visibility),
            signature=signature,
        )

        updates = {}
        if stamp is not None:
            updates.update(
                file_content=stamp.content,
                file_size=len(stamp.content),
                hash=stamp.hash,
                file_metadata=stamp.metadata,
            )
        if result.document_status is not None:
            updates["status"] = result.document_status
        if updates:
            document = self.repository.update_document(document.id, updates)

        outcome = ActionOutcome(
            workflow_id=workflow.id,
            document_id=document.id,
            action=action_type.value,
            step=step,
            current_step=workflow.current_step,
            is_completed=workflow.is_completed,
            document_status=document.status.value,
            document_hash=document.hash,
            stamped=stamp is not None,
        )
        return outcome, stamp

    def _try_stamp(self, workflow, document, role: str, signature_data: str) -> Optional[StampResult]:
        """Stamp the signature; failures are logged and never block the decision."""
        if not document.is_pdf:
            logger.info("Document %s is not a PDF; signature not stamped", document.id)
            return None
        try:
            placement = self._template_placement(workflow, document, role)
            return self.stamper.stamp(document, role, signature_data, placement)
        except NoPlacementForRoleError as e:
            logger.info("Skipping signature stamp on document %s: %s", document.id, e)
        except SignatureError as e:
            logger.warning("Signature stamping failed for document %s: %s", document.id, e)
        return None

    def _template_placement(self, workflow, document, role: str) -> Optional[NormalizedPlacement]:
        """Next unused template slot for ``role``; the last slot is reused once all are consumed."""
        template = self.repository.get_document_template(document.type)
        slots = template.placements_for(role) if template else []
        if not slots:
            return None

        index = min(self.repository.count_role_actions(workflow.id, role), len(slots) - 1)
        try:
            return NormalizedPlacement(**slots[index])
        except (TypeError, ValidationError) as e:
            logger.warning("Ignoring malformed placement for %s on template %s: %s", role, template.id, e)
            return None

    def _mirror_file(self, document_id: int, stamp: StampResult) -> None:
        document = self.repository.get_document(document_id)
        if not document or not document.file_path:
            return
        try:
            with open(document.file_path, "wb") as f:
                f.write(stamp.content)
        except OSError as e:
            # The stored content and hash stay authoritative
            logger.warning("Could not write stamped file %s: %s", document.file_path, e)

    def record_upload(self, workflow_id: int, actor: Actor, comment: Optional[str] = None) -> ActionOutcome:
        """
        Record that a document file was supplied for a request. When the
        uploader's role is the first reviewer step, that step counts as done.
        """
        try:
            workflow = self.repository.get_workflow(workflow_id)
            if workflow is None:
                raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
            if workflow.is_completed:
                raise WorkflowCompletedError(workflow_id)

            document = self.repository.get_document(workflow.document_id)
            if document is None:
                raise DocumentNotFoundError(f"Document {workflow.document_id} not found")
            step = workflow.current_step
            self.repository.append_workflow_action(
                workflow_id=workflow.id,
                user_id=actor.user_id,
                actor_role=actor.role,
                action=ActionType.UPLOADED,
                step=step,
                comment=encode_comment(comment),
            )

            status = DocumentStatus.IN_REVIEW
            if step == 0 and workflow.current_role == actor.role:
                result = transition(WorkflowState.of(workflow), ActionType.FORWARDED, workflow.id)
                workflow = self.repository.update_workflow(
                    workflow.id,
                    {"current_step": result.state.current_step, "is_completed": result.state.is_completed},
                    expected_version=workflow.version,
                )
                status = result.document_status or status
            document = self.repository.update_document(document.id, {"status": status})
            self.repository.commit()
        except Exception:
            self.repository.rollback()
            raise

        logger.info("Workflow %s: upload recorded by %s", workflow.id, actor.role)
        return ActionOutcome(
            workflow_id=workflow.id,
            document_id=document.id,
            action=ActionType.UPLOADED.value,
            step=step,
            current_step=workflow.current_step,
            is_completed=workflow.is_completed,
            document_status=document.status.value,
            document_hash=document.hash,
        )

    def audit_trail(self, workflow_id: int) -> List[AuditEntry]:
        """Every action with its decoded comment, for privileged views."""
        entries = []
        for record in self.repository.list_actions(workflow_id):
            decoded = decode_comment(record.comment)
            entries.append(AuditEntry(
                id=record.id,
                user_id=record.user_id,
                actor_role=record.actor_role,
                action=record.action.value,
                step=record.step,
                audience=decoded.audience,
                targets=decoded.targets,
                text=decoded.text,
                has_signature=bool(record.signature),
                created_at=record.created_at,
            ))
        return entries

    def visible_comments(self, workflow_id: int, viewer_role: str) -> List[DecodedComment]:
        records = self.repository.list_actions(workflow_id)
        return filter_comments((r.comment for r in records), viewer_role)
