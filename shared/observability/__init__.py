from .setup import setup_observability
from .metrics import (
    scribe_orders_created_total,
    scribe_status_transitions_total,
    scribe_notifications_total,
    scribe_comments_total,
)
