"""Routing of private messages: persist first, then push live and echo."""
from starlette.concurrency import run_in_threadpool

from ..shared import events
from .errors import InvalidMessage, SessionClosed
from .logging_config import configure_logging
from .message_log import MessageLog, OutgoingMessage, StoredMessage
from .presence import PresenceTable
from .schemas import PrivateMessageIn, PrivateMessageOut

logger = configure_logging()


def build_outgoing(sender: str, payload: PrivateMessageIn) -> OutgoingMessage:
    """Validate a client payload and normalize it into an OutgoingMessage."""
    if payload.sender is not None and payload.sender != sender:
        raise InvalidMessage("Sender does not match the joined user")
    recipient = (payload.to or "").strip()
    if not recipient:
        raise InvalidMessage("Message has no recipient")
    body = payload.message or ""
    attachment = (payload.attachment or "").strip()
    if not body.strip() and not attachment:
        raise InvalidMessage("Message needs text or an attachment")
    return OutgoingMessage(sender=sender, recipient=recipient, body=body, attachment=attachment)


def message_event(stored: StoredMessage) -> dict:
    return PrivateMessageOut(
        sender=stored.sender,
        to=stored.recipient,
        message=stored.body,
        attachment=stored.attachment,
        timestamp=stored.created_at,
    ).model_dump(by_alias=True, mode="json")


class DeliveryRouter:
    def __init__(self, message_log: MessageLog, presence: PresenceTable):
        self.message_log = message_log
        self.presence = presence

    async def route(self, sender_session, payload: PrivateMessageIn) -> StoredMessage:
        """Persist a message, deliver it live if possible and echo it back.

        Raises InvalidMessage before anything is stored and PersistenceFailure
        if the log append fails; in both cases nothing is pushed.
        """
        outgoing = build_outgoing(sender_session.username, payload)
        stored = await run_in_threadpool(self.message_log.append, outgoing)
        event = message_event(stored)

        recipient_session = self.presence.lookup(stored.recipient)
        delivered = False
        if recipient_session is not None and recipient_session is not sender_session:
            try:
                recipient_session.push(events.PRIVATE_MESSAGE, event)
                delivered = True
            except SessionClosed:
                logger.info(
                    "LIVE_PUSH_SKIPPED message_id=%s recipient=%s reason=session_closed",
                    stored.id,
                    stored.recipient,
                )

        try:
            sender_session.push(events.PRIVATE_MESSAGE, event)
        except SessionClosed:
            logger.info("ECHO_SKIPPED message_id=%s sender=%s", stored.id, stored.sender)

        logger.info(
            "MESSAGE_ROUTED message_id=%s sender=%s recipient=%s live=%s",
            stored.id,
            stored.sender,
            stored.recipient,
            delivered,
        )
        return stored
