class ServiceError(Exception):
    status = 400

    def __init__(self, code="SERVICE_ERROR", message="Service error", details=None, status=None, **extra):
        self.code = code
        self.message = message
        self.details = details or {}
        self.extra = extra
        if status is not None:
            self.status = status
        super().__init__(message)


class ValidationError(ServiceError):
    """Malformed or out-of-policy input. ``errors`` lists every violated rule."""

    def __init__(self, message, errors=None, **kwargs):
        extra = {"errors": list(errors)} if errors else {}
        super().__init__(code="VALIDATION_ERROR", message=message, **extra, **kwargs)

    @classmethod
    def from_errors(cls, errors):
        return cls(errors[0], errors=errors)


class AuthError(ServiceError):
    status = 401

    def __init__(self, message="Not authorized to access this route", **kwargs):
        super().__init__(code="UNAUTHORIZED", message=message, **kwargs)


class AuthorizationError(ServiceError):
    status = 403

    def __init__(self, message="Not authorized to access this resource", **kwargs):
        super().__init__(code="FORBIDDEN", message=message, **kwargs)


class LockedError(ServiceError):
    status = 423

    def __init__(self, message, lock_until=None):
        super().__init__(
            code="ACCOUNT_LOCKED",
            message=message,
            lockUntil=lock_until.isoformat() + "Z" if lock_until else None,
        )


class RateLimitError(ServiceError):
    status = 429

    def __init__(self, message, retry_after):
        super().__init__(code="RATE_LIMITED", message=message, retryAfter=retry_after)


class InsufficientFundsError(ServiceError):
    def __init__(self, message="Insufficient balance", balance=None):
        super().__init__(
            code="INSUFFICIENT_FUNDS",
            message=message,
            currentBalance=float(balance) if balance is not None else None,
        )


class NotFoundError(ServiceError):
    status = 404

    def __init__(self, message="Resource not found"):
        super().__init__(code="NOT_FOUND", message=message)


class ConflictError(ServiceError):
    # 400 rather than 409 to keep the documented register contract
    status = 400

    def __init__(self, message, field=None):
        super().__init__(code="CONFLICT", message=message, details={"field": field} if field else None)


class LedgerError(ServiceError):
    """A multi-step balance operation failed and was compensated."""

    status = 500

    def __init__(self, message):
        super().__init__(code="LEDGER_ERROR", message=message)
