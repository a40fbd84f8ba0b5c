"""URL configuration for the booking service.

Routes the Django admin, JWT token endpoints, the OpenAPI schema and the
application-level routers of each app.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    # Auth
    path('api/v1/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/v1/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    # Application URLs
    path('api/v1/public/', include('apps.bookings.public_urls')),
    path('api/v1/bookings/', include('apps.bookings.urls')),
    path('api/v1/properties/<int:property_id>/credentials/', include('apps.access.urls')),
    path('api/v1/notifications/', include('apps.notifications.urls')),
    path('api/v1/webhooks/', include('apps.payments.urls')),
    # Schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]
