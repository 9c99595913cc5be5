"""Application constants."""

# Delivery always lands at this local hour in the recipient's timezone
DELIVERY_HOUR = 16  # 4:00 PM

# Mon-Fri hours that must elapse before a letter may be delivered
BUSINESS_HOURS_BEFORE_DELIVERY = 24

# Used for unresolved recipients until the sweep resolves them
PLACEHOLDER_TIMEZONE = "UTC"

# Anti-enumeration response for identifier lookups
GENERIC_LOOKUP_MESSAGE = "If an account exists, we'll route it."
