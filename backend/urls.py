"""
DSP Backend URL Configuration

- /admin/: Django admin (Jazzmin)
- /api/elearning/: E-Learning API (JWT token, course purchases)
- /api/payments/: Stripe configuration for the frontend
"""

from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/elearning/", include("elearning.urls")),
    path("api/payments/", include("core.stripe_integration.urls")),
]
