"""Working-paper (KKP) workflow: role-gated status changes, tasks and team chat.

Only Managers and Partners may approve. Once approved, the paper can no
longer be moved back to In Progress or Finish.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from .errors import TransitionNotAllowedError
from .models import ChatMessage, KKPStatus, Task, TaskStatus, UserRole

APPROVER_ROLES: frozenset[UserRole] = frozenset({UserRole.MANAGER, UserRole.PARTNER})

_logger = logging.getLogger(__name__)


def default_tasks() -> list[Task]:
    return [
        Task("1", "Collect Bank Statements", "Junior A", TaskStatus.DONE, "2023-10-01"),
        Task("2", "Verify Petty Cash", "Senior B", TaskStatus.DOING, "2023-10-05"),
        Task("3", "Confirm Receivables", "Junior A", TaskStatus.TODO, "2023-10-10"),
    ]


def default_chat() -> list[ChatMessage]:
    return [
        ChatMessage(
            "1", "Partner", "Please focus on the high-value transaction in March.", "10:00 AM"
        ),
        ChatMessage(
            "2", "Senior B", "Noted. I have flagged it in the Vouching Worksheet.", "10:05 AM"
        ),
    ]


class KKPWorkflow:
    def __init__(
        self,
        *,
        status: KKPStatus = KKPStatus.IN_PROGRESS,
        role: UserRole = UserRole.SENIOR,
        tasks: Iterable[Task] | None = None,
        messages: Iterable[ChatMessage] | None = None,
    ) -> None:
        self.status = status
        self.role = role
        self.tasks: list[Task] = list(default_tasks() if tasks is None else tasks)
        self.messages: list[ChatMessage] = list(default_chat() if messages is None else messages)

    @property
    def can_approve(self) -> bool:
        return self.role in APPROVER_ROLES

    def allowed_transitions(self) -> list[KKPStatus]:
        allowed: list[KKPStatus] = []
        if self.status is not KKPStatus.APPROVED:
            allowed.extend([KKPStatus.IN_PROGRESS, KKPStatus.FINISH])
        if self.can_approve:
            allowed.append(KKPStatus.APPROVED)
        return allowed

    def switch_role(self, role: UserRole) -> None:
        self.role = role

    def transition(self, target: KKPStatus) -> KKPStatus:
        if target is KKPStatus.APPROVED and not self.can_approve:
            raise TransitionNotAllowedError(
                f"Approval Locked (Mgr/Partner Only): role {self.role} cannot approve"
            )
        if target not in self.allowed_transitions():
            raise TransitionNotAllowedError(
                f"Cannot move KKP from {self.status} to {target} as {self.role}"
            )
        _logger.info("kkp:transition from=%s to=%s role=%s", self.status, target, self.role)
        self.status = target
        return self.status

    def post_message(
        self, content: str, *, sender: str = "You", now: datetime | None = None
    ) -> ChatMessage | None:
        """Append a chat message; blank content is ignored and returns ``None``."""

        if not content.strip():
            return None
        ts = now or datetime.now()
        msg = ChatMessage(
            id=str(int(ts.timestamp() * 1000)),
            sender=sender,
            content=content,
            timestamp=ts.strftime("%H:%M"),
        )
        self.messages.append(msg)
        return msg


__all__ = ["APPROVER_ROLES", "KKPWorkflow", "default_chat", "default_tasks"]
