from prometheus_client import Counter

# Business Metrics
scribe_orders_created_total = Counter(
    "scribe_orders_created_total",
    "Total orders submitted by students",
)

scribe_status_transitions_total = Counter(
    "scribe_status_transitions_total",
    "Order status changes",
    ["status"]  # Labels: 'assigned', 'writing', 'delivered', etc.
)

scribe_notifications_total = Counter(
    "scribe_notifications_total",
    "Notifications written by the notifier",
    ["event"]  # Labels: 'OrderCreated', 'CommentAdded', etc.
)

scribe_comments_total = Counter(
    "scribe_comments_total",
    "Comments posted on orders",
)
