"""
Support Tickets

Customers open tickets from the contact screen; admins resolve them.
"""

import logging

from storefront.models import Collection, TicketStatus
from storefront.schemas import Ticket
from storefront.services.store import SERVER_TIMESTAMP, BaseDocumentStore, Query
from storefront.services.users import AuthUser

logger = logging.getLogger(__name__)


class TicketError(Exception):
    """Ticket could not be submitted; message is user-facing."""


def tickets_query() -> Query:
    return Query(collection=Collection.TICKETS.value, order_by="timestamp", descending=True)


async def submit_ticket(
    store: BaseDocumentStore,
    user: AuthUser,
    subject: str,
    message: str,
) -> str:
    """
    Raises:
        TicketError: Subject or message is blank
    """
    if not subject.strip() or not message.strip():
        raise TicketError("Please fill in all fields")

    ticket_id = await store.add(
        Collection.TICKETS.value,
        {
            "userId": user.uid,
            "userEmail": user.email,
            "userName": user.display_name or user.email,
            "subject": subject,
            "message": message,
            "status": TicketStatus.OPEN.value,
            "timestamp": SERVER_TIMESTAMP,
        },
    )
    logger.info(f"Ticket {ticket_id} opened by {user.uid}: {subject}")
    return ticket_id


async def resolve_ticket(store: BaseDocumentStore, ticket_id: str) -> None:
    await store.update(
        Collection.TICKETS.value, ticket_id, {"status": TicketStatus.RESOLVED.value}
    )
    logger.info(f"Ticket {ticket_id} resolved")


async def list_tickets(store: BaseDocumentStore) -> list[Ticket]:
    return [Ticket.from_document(d) for d in await store.query_documents(tickets_query())]


def open_tickets(tickets: list[Ticket]) -> list[Ticket]:
    return [t for t in tickets if t.status == TicketStatus.OPEN]


def resolved_tickets(tickets: list[Ticket]) -> list[Ticket]:
    return [t for t in tickets if t.status != TicketStatus.OPEN]
