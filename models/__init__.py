# Models package for data structures and database models

from .ticket import Ticket, TicketSummary, CloseResult, OpenResult

__all__ = [
    'Ticket',
    'TicketSummary',
    'CloseResult',
    'OpenResult'
]
