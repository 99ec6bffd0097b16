"""Signals emitted by the core infrastructure.

``outbox_event_relayed`` is sent once per outbox row drained by
``core.relay_outbox_events``.  Receivers get ``event_type``, ``topic``,
``aggregate_id`` and ``payload`` keyword arguments; an exception raised
by any receiver marks the row as FAILED.
"""

from django.dispatch import Signal

outbox_event_relayed = Signal()
