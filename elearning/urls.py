"""
E-Learning Application URL Configuration

URL Structure:
- /api/elearning/token/: Authentication endpoints (JWT token management)
- /api/elearning/purchases/: Course checkout, Stripe webhook and purchase status

Author: DSP Development Team
Version: 1.0.0
"""

from typing import List
from django.urls import path, include, URLPattern
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

from .purchases import urls as purchase_urls

app_name = 'elearning'

urlpatterns: List[URLPattern] = [
    # Authentication endpoints (JWT token management)
    path('token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('token/verify/', TokenVerifyView.as_view(), name='token_verify'),

    # Course purchases (checkout, webhook, status)
    path('purchases/', include((purchase_urls.urlpatterns, 'purchases'))),
]
