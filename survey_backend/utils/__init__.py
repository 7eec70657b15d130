"""Utilities module - rate limiting, caching and client address helpers."""
from survey_backend.utils.cache import ResultsCache
from survey_backend.utils.client_ip import get_client_ip
from survey_backend.utils.rate_limiter import InMemoryRateLimiter, RateLimiter, TokenBucket

__all__ = ["ResultsCache", "get_client_ip", "InMemoryRateLimiter", "RateLimiter", "TokenBucket"]
