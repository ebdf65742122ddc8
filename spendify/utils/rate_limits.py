"""
Per-IP rate limits for the auth endpoints.

Storage defaults to in-process memory, which is only correct for a single
process. Multi-instance deployments must point RATELIMIT_STORAGE_URI at a
shared store (redis://, memcached://).
"""
import math

from flask import current_app

from spendify.extensions import limiter
from spendify.utils.exceptions import RateLimitError
from spendify.utils.response_formatter import service_error_response

LOGIN_MESSAGE = "Too many login attempts from this IP. Please try again after 15 minutes."
REGISTER_MESSAGE = "Too many registration attempts from this IP. Please try again after 1 hour."


def _failed_login(response):
    return response.status_code != 200


login_limit = limiter.limit(
    lambda: current_app.config["LOGIN_RATE_LIMIT"],
    error_message=LOGIN_MESSAGE,
    deduct_when=_failed_login,
)

register_limit = limiter.limit(
    lambda: current_app.config["REGISTER_RATE_LIMIT"],
    error_message=REGISTER_MESSAGE,
)


def retry_after_minutes(exc):
    item = getattr(getattr(exc, "limit", None), "limit", None)
    seconds = item.get_expiry() if item is not None else 60
    return max(1, math.ceil(seconds / 60))


def rate_limit_exceeded(exc):
    current_app.logger.warning("Rate limit exceeded: %s", exc.description)
    error = RateLimitError(exc.description or "Too many requests, please try again later.",
                           retry_after=retry_after_minutes(exc))
    return service_error_response(error)
