import logging

logger = logging.getLogger("demo_dashboard.api")


def log_api_error(error_msg, source=None):
    """Log an API error with the request context, if there is one. Call from an except block."""
    try:
        from flask import g, has_request_context, request

        if has_request_context():
            user = g.get("user") or {}
            logger.error(
                f"[{source or request.path}] {request.method} {request.path} "
                f"user={user.get('email')}: {error_msg}",
                exc_info=True,
            )
            return
    except Exception as e:
        logger.warning(f"Could not attach request context to error log: {e}")

    logger.error(f"[{source}] {error_msg}", exc_info=True)
