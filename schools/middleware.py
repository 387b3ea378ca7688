from django.utils.deprecation import MiddlewareMixin
from .models import School


def resolve_school(request):
    """School named by the X-School-ID header or a /school/<id>/ path prefix"""
    school_id = request.META.get('HTTP_X_SCHOOL_ID')
    if not school_id:
        parts = request.path.strip('/').split('/')
        if len(parts) > 1 and parts[0] == 'school':
            school_id = parts[1]
    if not school_id:
        return None
    try:
        return School.objects.get(pk=int(school_id))
    except (School.DoesNotExist, ValueError):
        return None


class TenantMiddleware(MiddlewareMixin):
    """Attach the current school to the request as ``request.current_school``"""

    def process_request(self, request):
        request.current_school = resolve_school(request)
