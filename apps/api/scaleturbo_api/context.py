"""Request context management for observability.

Context variables for request tracking across async boundaries.
"""

from contextvars import ContextVar

# Request ID - unique per HTTP request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# User ID - authenticated caller or the user a payment resolved to
user_id_var: ContextVar[str] = ContextVar("user_id", default="")
