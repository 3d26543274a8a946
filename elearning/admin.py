"""
E-Learning Application Django Admin Configuration

Admin interface for the course catalogue and course purchases.

The admin interface is organized into logical sections:
- Course Management: Courses with inline lectures
- Purchases: Purchase records with a bulk action for manual completion

Purchases are read-mostly in the admin: status changes go through
`PurchaseService` so lecture unlock and enrollment happen with them.

Author: DSP Development Team
Version: 1.0.0
"""

from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.translation import gettext_lazy as _

from .models import Course, Lecture, CoursePurchase
from .purchases.exceptions import PurchaseError
from .purchases.services import PurchaseService

# --- Course Management Administration ---


class LectureInline(admin.TabularInline):
    """Inline admin for course lecture management."""

    model = Lecture
    extra = 1
    fields = ("title", "video_url", "order", "is_preview_free")
    ordering = ("order",)


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    """
    Administration interface for courses.

    Shows price and enrollment count; enrollments themselves are managed by
    the purchase flow.
    """

    list_display = ("title", "price", "creator", "lecture_count", "enrolled_count")
    search_fields = ("title", "description")
    inlines = [LectureInline]
    filter_horizontal = ("enrolled_students",)

    fieldsets = (
        (_("Basic Information"), {"fields": ("title", "description", "thumbnail", "creator")}),
        (_("Pricing"), {"fields": ("price",)}),
        (
            _("Enrollment"),
            {
                "fields": ("enrolled_students",),
                "classes": ("collapse",),
            },
        ),
    )

    @admin.display(description=_("Lectures"))
    def lecture_count(self, obj: Course) -> int:
        return obj.lectures.count()

    @admin.display(description=_("Enrolled"))
    def enrolled_count(self, obj: Course) -> int:
        return obj.enrolled_students.count()

    def get_queryset(self, request: HttpRequest) -> QuerySet:
        """Optimize queryset for better performance."""
        return super().get_queryset(request).select_related("creator")


# --- Purchase Administration ---


@admin.register(CoursePurchase)
class CoursePurchaseAdmin(admin.ModelAdmin):
    list_display = ("id", "course", "buyer", "amount", "currency", "status", "created_at")
    list_filter = ("status", "currency", "created_at")
    search_fields = ("payment_reference", "buyer__username", "buyer__email", "course__title")
    list_select_related = ("course", "buyer")
    readonly_fields = (
        "course",
        "buyer",
        "amount",
        "currency",
        "status",
        "payment_reference",
        "created_at",
        "updated_at",
    )
    actions = ["complete_purchases"]

    def has_add_permission(self, request: HttpRequest) -> bool:
        return False

    @admin.action(description=_("Complete selected purchases and grant access"))
    def complete_purchases(self, request: HttpRequest, queryset: QuerySet) -> None:
        service = PurchaseService()
        completed = skipped = 0
        for purchase in queryset:
            if purchase.is_completed:
                skipped += 1
                continue
            try:
                service.complete_purchase(purchase.pk)
                completed += 1
            except PurchaseError as exc:
                self.message_user(request, f"Purchase #{purchase.pk}: {exc.message}", messages.ERROR)
        if completed:
            self.message_user(request, f"{completed} purchase(s) completed.", messages.SUCCESS)
        if skipped:
            self.message_user(request, f"{skipped} purchase(s) were already completed.", messages.INFO)
