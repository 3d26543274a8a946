from django.urls import path

from .views import (
    CreateCheckoutSessionView,
    StripeWebhookView,
    CourseDetailWithPurchaseStatusView,
    PurchasedCourseListView,
    UpdatePurchaseStatusView,
)

urlpatterns = [
    path("", PurchasedCourseListView.as_view(), name="purchased-course-list"),
    path("checkout-session/", CreateCheckoutSessionView.as_view(), name="checkout-session"),
    path("webhook/", StripeWebhookView.as_view(), name="stripe-webhook"),
    path(
        "courses/<int:course_id>/",
        CourseDetailWithPurchaseStatusView.as_view(),
        name="course-detail-with-status",
    ),
    path("status/", UpdatePurchaseStatusView.as_view(), name="update-purchase-status"),
]
