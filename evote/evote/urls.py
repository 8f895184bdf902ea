"""
URL configuration for the evote project.

Every API endpoint lives under the versioned `api/v1/` prefix. The voter
area and the administrator area share these routes; role checks happen in
each view's permission classes.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

# API endpoints under a versioned path
api_urlpatterns = [
    path("accounts/", include("accounts.urls")),
    path("activity/", include("activity.urls")),
    path("elections/", include("elections.urls")),
    path("voting/", include("voting.urls")),
    path("support/", include("support.urls")),
]

urlpatterns = [
    path("api/v1/", include(api_urlpatterns)),
    # Non-API paths like admin and auth
    path("admin/", admin.site.urls),
    path("api-auth/", include("rest_framework.urls")),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
