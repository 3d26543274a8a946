from rest_framework import serializers

from .models import Course, Lecture


class LectureSerializer(serializers.ModelSerializer):
    class Meta:
        model = Lecture
        fields = ["id", "title", "video_url", "order", "is_preview_free"]


class CourseSerializer(serializers.ModelSerializer):
    """Course detail with lectures and creator, as shown on the course page."""

    lectures = LectureSerializer(many=True, read_only=True)
    creator = serializers.CharField(source="creator.username", read_only=True, default=None)
    enrolled_count = serializers.SerializerMethodField()

    class Meta:
        model = Course
        fields = [
            "id",
            "title",
            "description",
            "thumbnail",
            "price",
            "creator",
            "lectures",
            "enrolled_count",
        ]

    def get_enrolled_count(self, obj) -> int:
        return obj.enrolled_students.count()


class CourseSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Course
        fields = ["id", "title", "thumbnail", "price"]
