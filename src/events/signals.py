"""Signals emitted by the events app.

``realtime_event`` is the boundary to whatever pushes live updates to clients (websocket gateway, SSE, ...).
Receivers get ``channel`` (``event:<id>``), ``name`` and ``payload`` keyword arguments.
"""

from django.dispatch import Signal

realtime_event = Signal()
