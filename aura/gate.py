"""Human-in-the-loop confirmation gate for action requests."""

import asyncio
from typing import Any, Protocol

from aura.conversation import ConversationLog, Message, Role
from aura.events import ActionRequest, SessionUpdate, UpdateKind, UpdateListener
from aura.logging import get_logger
from aura.tools.registry import ToolResult

log = get_logger(__name__)

CANCELLED_NOTICE = "(Action cancelled by user)"


class Executor(Protocol):
    async def execute(self, name: str, arguments: dict[str, Any] | None = None) -> ToolResult: ...


class ConfirmationGate:
    """Holds at most one action request until the user confirms or denies it.

    A new request replaces an undecided one. Confirming or denying with no
    request pending does nothing.
    """

    def __init__(
        self,
        conversation: ConversationLog,
        executor: Executor,
        *,
        feedback_seconds: float = 3.0,
        listener: UpdateListener | None = None,
    ):
        self.conversation = conversation
        self.executor = executor
        self.feedback_seconds = feedback_seconds
        self._listener = listener
        self._pending: ActionRequest | None = None
        self._feedback: str | None = None
        self._feedback_handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> ActionRequest | None:
        return self._pending

    @property
    def is_pending(self) -> bool:
        return self._pending is not None

    @property
    def feedback(self) -> str | None:
        """Name of the tool whose execution is being acknowledged, if any."""
        return self._feedback

    def _publish(self, update: SessionUpdate) -> None:
        if self._listener is not None:
            self._listener(update)

    def _append_notice(self, content: str) -> None:
        message = Message(role=Role.ASSISTANT, content=content)
        if self.conversation.append(message):
            self._publish(SessionUpdate(UpdateKind.MESSAGE_APPENDED, message=message))

    def signal(self, request: ActionRequest) -> None:
        """Make ``request`` the pending request, replacing any older one.

        Re-signalling the request that is already pending changes nothing
        and is not announced again.
        """
        if self._pending == request:
            log.debug("Action request already pending", tool=request.tool_name)
            return
        if self._pending is not None:
            log.info(
                "Replacing pending action request",
                previous=self._pending.tool_name,
                tool=request.tool_name,
            )
        else:
            log.info("Action request pending", tool=request.tool_name)
        self._pending = request
        self._publish(SessionUpdate(UpdateKind.ACTION_PENDING, request=request))

    async def confirm(self) -> ToolResult | None:
        """Run the pending request through the executor.

        The gate is empty again before the executor is awaited. Execution
        failures are reported in the conversation and never raised.

        Returns:
            The tool result, or None if nothing was pending or the call raised
        """
        request = self._pending
        if request is None:
            return None
        self._pending = None
        log.info("Action confirmed", tool=request.tool_name)

        try:
            result = await self.executor.execute(request.tool_name, request.params)
        except Exception as e:
            log.error("Action execution failed", tool=request.tool_name, error=str(e))
            self._append_notice(f"Tool execution failed: {e}")
            return None

        if not result.success:
            log.warning("Action reported failure", tool=request.tool_name, error=result.error)
            self._append_notice(f"Tool execution failed: {result.error}")
            return result

        self._show_feedback(request.tool_name)
        return result

    def deny(self, *, implicit: bool = False) -> bool:
        """Drop the pending request and note the cancellation.

        Returns:
            True if a request was pending
        """
        request = self._pending
        if request is None:
            return False
        self._pending = None
        log.info("Action denied", tool=request.tool_name, implicit=implicit)
        self._append_notice(CANCELLED_NOTICE)
        return True

    def implicit_deny(self) -> bool:
        """Deny because the user moved on to a new message."""
        return self.deny(implicit=True)

    def _show_feedback(self, tool_name: str) -> None:
        self._cancel_feedback_timer()
        self._feedback = tool_name
        self._publish(SessionUpdate(UpdateKind.ACTION_EXECUTED, text=tool_name))
        loop = asyncio.get_running_loop()
        self._feedback_handle = loop.call_later(self.feedback_seconds, self._clear_feedback)

    def _clear_feedback(self) -> None:
        self._feedback_handle = None
        if self._feedback is None:
            return
        self._feedback = None
        self._publish(SessionUpdate(UpdateKind.FEEDBACK_CLEARED))

    def _cancel_feedback_timer(self) -> None:
        if self._feedback_handle is not None:
            self._feedback_handle.cancel()
            self._feedback_handle = None

    def close(self) -> None:
        """Cancel the acknowledgment timer."""
        self._cancel_feedback_timer()
        self._feedback = None
