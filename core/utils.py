"""Request helpers shared by the auth backend, audit trail and exception handler."""


def get_client_ip(request):
    """
    Extract client IP address from request.
    Takes the first hop of X-Forwarded-For when behind a proxy.
    """
    if not request:
        return None

    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')
