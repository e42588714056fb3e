from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from authcore.services._shared.errors import EmailDispatchError


class EmailDispatcher(Protocol):
    """Outbound email collaborator."""

    def send_verification(self, address: str, token: str) -> None:
        """
        Deliver a verification link carrying ``token`` to ``address``.

        :raises EmailDispatchError: When delivery fails.
        """


@dataclass(slots=True)
class RecordingEmailDispatcher(EmailDispatcher):
    """
    Test double remembering every verification email.

    :ivar sent: ``(address, token)`` pairs in send order.
    :ivar fail: When ``True`` every send raises :class:`EmailDispatchError`.
    """

    sent: list[tuple[str, str]] = field(default_factory=list)
    fail: bool = False

    def send_verification(self, address: str, token: str) -> None:
        if self.fail:
            raise EmailDispatchError(f"delivery to {address} refused")
        self.sent.append((address, token))

    def last_token_for(self, address: str) -> str | None:
        return next((t for a, t in reversed(self.sent) if a == address), None)
