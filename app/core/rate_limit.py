# app/core/rate_limit.py
from slowapi import Limiter
from slowapi.util import get_remote_address

# In-memory storage; one bucket per client address.
# Endpoints opt in with @limiter.limit("N/minute") and must accept `request: Request`.
limiter = Limiter(key_func=get_remote_address)
