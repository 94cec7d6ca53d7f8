from django.contrib.auth.models import AnonymousUser
from django.http import JsonResponse

from lingocards.models import User

import structlog

logger = structlog.get_logger()

USER_HEADER = "X-User-Name"


# Authentication happens upstream; this resolves the already-verified
# username forwarded in a header into the acting user.
class HeaderUserMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.user = AnonymousUser()
        if request.path.startswith("/api"):
            username = request.headers.get(USER_HEADER)
            if username:
                try:
                    request.user = User.objects.get(username=username, is_active=True)
                except User.DoesNotExist:
                    logger.warning("unknown_user_header", username=username, path=request.path)
                    return JsonResponse(
                        {"error": "not_authenticated", "message": "User not found or inactive."},
                        status=401,
                    )
        response = self.get_response(request)
        return response
