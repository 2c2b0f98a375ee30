"""Decorators for the JSON ceremony endpoints."""

from functools import wraps

from quart import current_app, request

from .errors import PasskeyError, ValidationError
from .proxies import _passkeys

UNEXPECTED_ERROR = "An unexpected error occurred."


def ceremony_endpoint(event: str, *required_fields):
    """Parse the JSON body and map every failure to a 400 ``{"error": ...}``.

    The wrapped view receives the decoded body as its first argument.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            audit = _passkeys.audit
            payload = await request.get_json(force=True, silent=True)
            if not isinstance(payload, dict):
                payload = {}
            user_id = payload.get("userId")

            try:
                missing = [name for name in required_fields if not payload.get(name)]
                if missing:
                    verb = "is" if len(required_fields) == 1 else "are"
                    raise ValidationError(
                        f"{' and '.join(required_fields)} {verb} required.",
                        fields=missing,
                    )
                result = await current_app.ensure_async(func)(payload, *args, **kwargs)
            except PasskeyError as exc:
                audit.error(
                    f"{event} rejected",
                    userId=user_id,
                    kind=type(exc).__name__,
                    message=exc.message,
                )
                return exc.to_dict(), 400
            except Exception:
                audit.error(f"{event} exception", exc_info=True, userId=user_id)
                return {"error": UNEXPECTED_ERROR}, 400

            audit.info(f"{event} response", userId=user_id)
            return result

        return wrapper

    return decorator
