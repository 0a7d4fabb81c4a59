"""
URL configuration for authentication.

Owners authenticate with a JWT pair issued by SimpleJWT:
    token/          - Obtain access/refresh pair (email + password)
    token/refresh/  - Exchange a refresh token for a new access token
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

app_name = "authentication"

urlpatterns = [
    path("token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
]
