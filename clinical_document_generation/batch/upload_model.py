"""
Upload Grouping Model

In-memory collection of the batch's pending work. Groups are kept in
insertion order, which is also processing order.

Structural invariant (enforced on every document-type change):
    session-note group  → files empty, work lives on sessions
    any other type      → sessions empty

The model does not defend against concurrent mutation; callers mutate it
only before a run, and the orchestrator only during one.
"""

from typing import Iterator, List, Optional, Sequence

from loguru import logger

from clinical_document_generation.core.enums import DocumentType
from clinical_document_generation.core.exceptions import BatchStateError, GroupNotFoundError
from clinical_document_generation.core.models import ClientGroup, Session, UploadedFile


class UploadBatch:
    """
    Ordered list of ClientGroups plus the batch's running flag.

    Example:
        >>> batch = UploadBatch()
        >>> group_id = batch.add_group(DocumentType.SESSION_NOTE)
        >>> len(batch.get_group(group_id).sessions)
        1
    """

    def __init__(self, groups: Optional[Sequence[ClientGroup]] = None):
        self.groups: List[ClientGroup] = list(groups or [])
        self.is_running = False

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self) -> Iterator[ClientGroup]:
        return iter(self.groups)

    # =========================================================================
    # STAGE 1: LOOKUP
    # =========================================================================

    def find_group(self, group_id: str) -> Optional[ClientGroup]:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def get_group(self, group_id: str) -> ClientGroup:
        group = self.find_group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    def get_session(self, group_id: str, session_id: str) -> Session:
        session = self.get_group(group_id).find_session(session_id)
        if session is None:
            raise GroupNotFoundError(group_id, session_id=session_id)
        return session

    # =========================================================================
    # STAGE 2: GROUP OPERATIONS
    # =========================================================================

    def add_group(self, document_type: DocumentType = DocumentType.INTAKE_SUMMARY) -> str:
        """Append a queued group and return its id."""
        group = ClientGroup(document_type=document_type)
        if group.is_session_note:
            group.sessions.append(Session())
        self.groups.append(group)
        logger.debug(f"Added {document_type.value} group {group.id}")
        return group.id

    def remove_group(self, group_id: str) -> bool:
        """
        Remove a group. Silent no-op while running or for unknown ids.

        Returns:
            True if a group was removed
        """
        if self.is_running:
            logger.debug(f"Ignoring remove of group {group_id}: batch is running")
            return False

        before = len(self.groups)
        self.groups = [group for group in self.groups if group.id != group_id]
        return len(self.groups) < before

    def set_group_document_type(self, group_id: str, document_type: DocumentType) -> None:
        """
        Change a group's document type, restoring the structural invariant.

        Into session-note: group files are cleared; one empty session is
        synthesized if there are none. Out of session-note: all sessions
        are cleared. No confirmation; dropped uploads are not recoverable.
        """
        group = self.get_group(group_id)
        was_session_note = group.is_session_note
        group.document_type = document_type

        if group.is_session_note:
            if group.files:
                logger.debug(f"Dropping {len(group.files)} group file(s) from {group_id}")
            group.files = []
            if not was_session_note and not group.sessions:
                group.sessions = [Session()]
        else:
            if group.sessions:
                logger.debug(f"Dropping {len(group.sessions)} session(s) from {group_id}")
            group.sessions = []

    def set_group_metadata(
        self,
        group_id: str,
        client_id_hint: Optional[str] = None,
        date_of_service_hint: Optional[str] = None,
    ) -> None:
        """Update hints; None leaves a field unchanged."""
        group = self.get_group(group_id)
        if client_id_hint is not None:
            group.client_id_hint = client_id_hint
        if date_of_service_hint is not None:
            group.date_of_service_hint = date_of_service_hint

    def replace_group(self, group: ClientGroup) -> None:
        """Store a new copy of a group (same id, same position)."""
        for index, existing in enumerate(self.groups):
            if existing.id == group.id:
                self.groups[index] = group
                return
        raise GroupNotFoundError(group.id)

    def clear(self) -> None:
        if self.is_running:
            logger.debug("Ignoring clear: batch is running")
            return
        self.groups = []

    # =========================================================================
    # STAGE 3: SESSION OPERATIONS
    # =========================================================================

    def add_session(self, group_id: str, date_of_service: str = "") -> str:
        group = self.get_group(group_id)
        if not group.is_session_note:
            raise BatchStateError(
                "Sessions can only be added to session-note groups",
                context={"group_id": group_id, "document_type": group.document_type.value},
            )
        session = Session(date_of_service=date_of_service)
        group.sessions.append(session)
        return session.id

    def remove_session(self, group_id: str, session_id: str) -> bool:
        """Remove a session. Silent no-op while running or for unknown ids."""
        if self.is_running:
            return False
        group = self.find_group(group_id)
        if group is None:
            return False
        before = len(group.sessions)
        group.sessions = [session for session in group.sessions if session.id != session_id]
        return len(group.sessions) < before

    def set_session_date(self, group_id: str, session_id: str, date_of_service: str) -> None:
        self.get_session(group_id, session_id).date_of_service = date_of_service

    def replace_session(self, group_id: str, session: Session) -> None:
        """Store a new copy of a session (same id, same position)."""
        group = self.get_group(group_id)
        for index, existing in enumerate(group.sessions):
            if existing.id == session.id:
                group.sessions[index] = session
                return
        raise GroupNotFoundError(group_id, session_id=session.id)

    # =========================================================================
    # STAGE 4: FILE OPERATIONS
    # =========================================================================

    def attach_files(
        self,
        group_id: str,
        files: Sequence[UploadedFile],
        session_id: Optional[str] = None,
    ) -> None:
        """
        Append files to a group or to one of its sessions.

        Never deduplicates by name or content.

        Raises:
            BatchStateError: Group-level files on a session-note group, or
                session files on any other type
            GroupNotFoundError: Unknown group or session
        """
        group = self.get_group(group_id)

        if session_id is None:
            if group.is_session_note:
                raise BatchStateError(
                    "Session-note groups take files per session",
                    context={"group_id": group_id},
                )
            group.files.extend(files)
            return

        if not group.is_session_note:
            raise BatchStateError(
                "Only session-note groups have sessions",
                context={"group_id": group_id, "document_type": group.document_type.value},
            )
        self.get_session(group_id, session_id).files.extend(files)

    def detach_file(self, group_id: str, file_id: str, session_id: Optional[str] = None) -> bool:
        """
        Remove a file by identity. Idempotent: absent file, session or
        group is a no-op.

        Returns:
            True if a file was removed
        """
        group = self.find_group(group_id)
        if group is None:
            return False

        if session_id is None:
            owner = group
        else:
            owner = group.find_session(session_id)
            if owner is None:
                return False

        before = len(owner.files)
        owner.files = [f for f in owner.files if f.file_id != file_id]
        return len(owner.files) < before
