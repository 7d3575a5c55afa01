# utils/context.py

"""
Thread-local request context for audit logging.

The middleware stores who is acting and from where at the start of every
request so that models and services deep in the call stack can stamp their
audit fields without the request object being passed around.
"""

from threading import local
import logging

logger = logging.getLogger(__name__)

# Thread-local storage
_thread_locals = local()


def set_request_context(user_id=None, ip_address=None, user_agent=None,
                        request_path=None, request=None):
    """
    Set the current request context for this thread.

    Args:
        user_id: ID of the authenticated user (or None)
        ip_address: Client IP address
        user_agent: Browser user agent string
        request_path: The request path/URL
        request: The full request object (alternative to individual params)
    """
    if request is not None:
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            user_id = user.pk
        ip_address = get_client_ip(request)
        user_agent = request.META.get('HTTP_USER_AGENT', '')
        request_path = getattr(request, 'path', '')

    _thread_locals.request_context = {
        'user_id': str(user_id) if user_id is not None else None,
        'ip_address': ip_address,
        'user_agent': user_agent or '',
        'request_path': request_path or '',
    }

    logger.debug(f"Set request context: user={user_id}, ip={ip_address}")


def get_request_context():
    """
    Get the current request context for this thread.

    Returns:
        dict or None when no context is set (shell, management commands).
    """
    return getattr(_thread_locals, 'request_context', None)


def get_current_user_id():
    context = get_request_context()
    return context.get('user_id') if context else None


def clear_request_context():
    """Clear the request context for this thread."""
    if hasattr(_thread_locals, 'request_context'):
        delattr(_thread_locals, 'request_context')
        logger.debug("Cleared request context")


def get_client_ip(request):
    """
    Extract the client's real IP address, honouring X-Forwarded-For.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


# ============================================================================
# CONTEXT MANAGER
# ============================================================================

class RequestContext:
    """
    Context manager for temporarily setting request context.

    Useful for management commands and scheduled jobs that act on behalf
    of a user or of the system.

    Example:
        with RequestContext(user_id=cashier.pk, ip_address='127.0.0.1'):
            ledger.confirm_cash_payment(reference, or_number, cashier.pk)
    """

    def __init__(self, user_id=None, ip_address=None, user_agent=None,
                 request_path=None):
        self.context = {
            'user_id': str(user_id) if user_id is not None else None,
            'ip_address': ip_address,
            'user_agent': user_agent or '',
            'request_path': request_path or '',
        }
        self.previous_context = None

    def __enter__(self):
        self.previous_context = get_request_context()
        _thread_locals.request_context = self.context
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_context:
            _thread_locals.request_context = self.previous_context
        else:
            clear_request_context()
