from django.dispatch import Signal

# Sent when a balance row is created lazily for a (user, scope) pair.
# kwargs: balance
balance_created = Signal()

# Sent after an operation mutates a balance.
# kwargs: balance, transaction
points_changed = Signal()

# Sent for every transaction appended to the ledger.
# kwargs: transaction
transaction_recorded = Signal()

# kwargs: balance, previous_tier, new_tier
tier_upgraded = Signal()

# kwargs: balance, threshold, bonus, transaction
milestone_reached = Signal()
