"""URL configuration for TripDesk.

Admin, JWT token endpoints, the API schema and each app's routes under
`api/v1/`.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore
from drf_spectacular.views import SpectacularAPIView  # type: ignore
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView  # type: ignore

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/v1/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/v1/schema/', SpectacularAPIView.as_view(), name='schema'),
    # Application URLs
    path('api/v1/hotels/', include('apps.hotels.urls')),
    path('api/v1/bookings/', include('apps.bookings.urls')),
    path('api/v1/flights/', include('apps.flights.urls')),
    path('api/v1/invoices/', include('apps.invoices.urls')),
    path('api/v1/notifications/', include('apps.notifications.urls')),
]
