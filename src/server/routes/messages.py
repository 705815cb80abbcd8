"""Recipient-facing message endpoints: list, accept, decline, open, reply."""
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Path, Query

from src.escrow.errors import NotFoundError
from src.escrow.state_machine import EscrowStateMachine
from src.server.models.requests import DeclineBody
from src.server.models.responses import (
    AcceptResponse,
    DeclineResponse,
    MessageView,
    PendingListResponse,
)
from src.server.routes._caller import Caller
from src.state.database import DatabaseManager
from src.state.repositories.messages import MessageRepository

logger = logging.getLogger(__name__)

DECLINE_NOTE = "Authorization voided; no funds were transferred"

MessageId = Annotated[str, Path(description="Message ID", min_length=1)]


def create_messages_router(
    db: DatabaseManager, state_machine: EscrowStateMachine,
) -> APIRouter:
    """Create message router with injected dependencies."""
    router = APIRouter(prefix="/api/messages", tags=["messages"])

    @router.get("/pending", response_model=PendingListResponse)
    async def list_pending(
        caller: Caller,
        limit: Annotated[int, Query(ge=1, le=100, description="Max messages")] = 50,
    ) -> PendingListResponse:
        """Caller's pending messages, highest bid first."""
        async with db.connection() as conn:
            messages = await MessageRepository(conn).list_pending_for_recipient(caller, limit)
        items = [MessageView.from_message(m) for m in messages]
        return PendingListResponse(messages=items, count=len(items))

    @router.get("/{message_id}", response_model=MessageView)
    async def get_message(message_id: MessageId, caller: Caller) -> MessageView:
        async with db.connection() as conn:
            message = await MessageRepository(conn).get_by_id(message_id)
        if message is None or caller not in (message.recipient_wallet, message.sender_wallet):
            raise NotFoundError(f"Message not found: {message_id}")
        return MessageView.from_message(message)

    @router.post("/{message_id}/accept", response_model=AcceptResponse)
    async def accept(message_id: MessageId, caller: Caller) -> AcceptResponse:
        """Settle the escrowed authorization and accept the message.

        A chain failure answers 502 and leaves the message pending; the
        caller may retry.
        """
        result = await state_machine.accept(message_id, caller)
        return AcceptResponse(
            message_id=message_id, settlement_tx_hash=result.settlement_tx_hash,
        )

    @router.post("/{message_id}/decline", response_model=DeclineResponse)
    async def decline(
        message_id: MessageId,
        caller: Caller,
        body: Optional[DeclineBody] = None,
    ) -> DeclineResponse:
        await state_machine.decline(message_id, caller, body.reason if body else None)
        return DeclineResponse(message_id=message_id, note=DECLINE_NOTE)

    @router.post("/{message_id}/open", response_model=MessageView)
    async def open_message(message_id: MessageId, caller: Caller) -> MessageView:
        return MessageView.from_message(await state_machine.open(message_id, caller))

    @router.post("/{message_id}/reply", response_model=MessageView)
    async def reply(message_id: MessageId, caller: Caller) -> MessageView:
        return MessageView.from_message(await state_machine.reply(message_id, caller))

    return router
