from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Course",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "title",
                    models.CharField(
                        help_text="Title of the course as shown to buyers",
                        max_length=200,
                        verbose_name="Course Title",
                    ),
                ),
                ("description", models.TextField(blank=True, verbose_name="Description")),
                (
                    "thumbnail",
                    models.URLField(
                        blank=True,
                        help_text="Image shown on the course card and on the checkout page",
                        max_length=500,
                        verbose_name="Thumbnail URL",
                    ),
                ),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Course price in major units of DEFAULT_CURRENCY",
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="Price",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "creator",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_courses",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Creator",
                    ),
                ),
                (
                    "enrolled_students",
                    models.ManyToManyField(
                        blank=True,
                        help_text="Users with full access to this course",
                        related_name="enrolled_courses",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Enrolled Students",
                    ),
                ),
            ],
            options={
                "verbose_name": "Course",
                "verbose_name_plural": "Courses",
                "db_table": "elearning_course",
                "ordering": ["title"],
            },
        ),
        migrations.CreateModel(
            name="Lecture",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255, verbose_name="Lecture Title")),
                ("video_url", models.URLField(blank=True, max_length=500, verbose_name="Video URL")),
                (
                    "order",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Order of lectures within the course (0 = first)",
                        verbose_name="Display Order",
                    ),
                ),
                (
                    "is_preview_free",
                    models.BooleanField(
                        default=False,
                        help_text="If True, the lecture is visible without purchasing the course",
                        verbose_name="Free Preview",
                    ),
                ),
                (
                    "course",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lectures",
                        to="elearning.course",
                        verbose_name="Course",
                    ),
                ),
            ],
            options={
                "verbose_name": "Lecture",
                "verbose_name_plural": "Lectures",
                "db_table": "elearning_lecture",
                "ordering": ["course", "order"],
            },
        ),
        migrations.CreateModel(
            name="CoursePurchase",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="Amount")),
                ("currency", models.CharField(default="eur", max_length=3, verbose_name="Currency")),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("completed", "Completed"), ("failed", "Failed")],
                        db_index=True,
                        default="pending",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                (
                    "payment_reference",
                    models.CharField(
                        blank=True,
                        help_text="Stripe checkout session id (cs_...)",
                        max_length=255,
                        null=True,
                        unique=True,
                        verbose_name="Payment Reference",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "buyer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="course_purchases",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Buyer",
                    ),
                ),
                (
                    "course",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="purchases",
                        to="elearning.course",
                        verbose_name="Course",
                    ),
                ),
            ],
            options={
                "verbose_name": "Course Purchase",
                "verbose_name_plural": "Course Purchases",
                "db_table": "elearning_course_purchase",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["course", "buyer", "status"], name="purchase_pair_status_idx"),
                ],
            },
        ),
    ]
