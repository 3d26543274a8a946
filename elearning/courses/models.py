"""
E-Learning Course Catalogue Models

This module defines the sellable course catalogue of the E-Learning system.
Courses are owned by the course-management side of the platform; the purchase
flow only reads prices and lectures and appends enrollments.

Models:
- Course: Paid course with price, lectures and enrolled students
- Lecture: Single lecture of a course with a free-preview flag

Enrollment:
    `Course.enrolled_students` is a many-to-many relation whose reverse
    accessor is `user.enrolled_courses`. Both "sets" are two views of the same
    join table, so adding an entry twice never creates a duplicate.

Author: DSP Development Team
Version: 1.0.0
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class Course(models.Model):
    """
    A paid course that buyers can purchase through Stripe Checkout.

    Attributes:
        title: Course title, also shown on the Stripe checkout page
        description: Long description
        thumbnail: Optional image URL, forwarded to Stripe as product image
        price: Current price in major currency units
        creator: Instructor who owns the course
        enrolled_students: Users entitled to the full course content

    Example:
        >>> course = Course.objects.create(title="Python Basics", price=Decimal("499"))
        >>> course.enroll(user)
        >>> course.is_enrolled(user)  # True
    """

    title = models.CharField(
        max_length=200,
        verbose_name=_("Course Title"),
        help_text=_("Title of the course as shown to buyers"),
    )

    description = models.TextField(
        blank=True,
        verbose_name=_("Description"),
    )

    thumbnail = models.URLField(
        max_length=500,
        blank=True,
        verbose_name=_("Thumbnail URL"),
        help_text=_("Image shown on the course card and on the checkout page"),
    )

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        verbose_name=_("Price"),
        help_text=_("Course price in major units of DEFAULT_CURRENCY"),
    )

    creator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_courses",
        verbose_name=_("Creator"),
    )

    enrolled_students = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="enrolled_courses",
        verbose_name=_("Enrolled Students"),
        help_text=_("Users with full access to this course"),
    )

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.title

    class Meta:
        verbose_name = _("Course")
        verbose_name_plural = _("Courses")
        ordering = ["title"]
        db_table = "elearning_course"

    def enroll(self, user) -> None:
        """Add `user` to the enrolled students. Repeating the call is a no-op."""
        self.enrolled_students.add(user)

    def is_enrolled(self, user) -> bool:
        return self.enrolled_students.filter(pk=user.pk).exists()

    def unlock_all_lectures(self) -> int:
        """
        Mark every lecture of this course as freely viewable.

        Returns:
            Number of lectures that were still locked before the call
        """
        return self.lectures.filter(is_preview_free=False).update(is_preview_free=True)


class Lecture(models.Model):
    """
    A single lecture (video unit) inside a course.

    Lectures flagged `is_preview_free` are visible without a purchase. A
    completed purchase unlocks all lectures of the course.
    """

    course = models.ForeignKey(
        Course,
        related_name="lectures",
        on_delete=models.CASCADE,
        verbose_name=_("Course"),
    )

    title = models.CharField(
        max_length=255,
        verbose_name=_("Lecture Title"),
    )

    video_url = models.URLField(
        max_length=500,
        blank=True,
        verbose_name=_("Video URL"),
    )

    order = models.PositiveIntegerField(
        default=0,
        verbose_name=_("Display Order"),
        help_text=_("Order of lectures within the course (0 = first)"),
    )

    is_preview_free = models.BooleanField(
        default=False,
        verbose_name=_("Free Preview"),
        help_text=_("If True, the lecture is visible without purchasing the course"),
    )

    def __str__(self) -> str:
        return f"{self.course.title} - {self.title}"

    class Meta:
        verbose_name = _("Lecture")
        verbose_name_plural = _("Lectures")
        ordering = ["course", "order"]
        db_table = "elearning_lecture"
