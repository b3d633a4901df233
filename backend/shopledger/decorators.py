# Overview: Request decorators for account-scoped API routes.

from functools import wraps

from flask import current_app, g, jsonify

from .errors import LedgerError


def require_account(f):
    """
    Resolve the <account_id> URL segment to an Account.

    Sets g.account and g.account_id. Unknown accounts answer 404 through
    the LedgerError handler.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        from .services import account_service

        account = account_service.get_account(kwargs["account_id"])
        g.account = account
        g.account_id = account.id
        return f(*args, **kwargs)

    return decorated_function


def json_errors(action: str):
    """
    Log and answer 500 for unexpected failures.

    LedgerError subclasses propagate to the app-level handler, which maps
    them to their status code.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except LedgerError:
                raise
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function

    return decorator
