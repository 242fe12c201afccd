"""Serializers for the files API."""

from typing import Any, ClassVar

from django.contrib.auth import get_user_model, password_validation
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from rest_framework import serializers

from server.apps.files.infrastructure.metadata import classify_mime_type
from server.apps.files.logic.access_control import is_owner, visibility_label
from server.apps.files.models import File

User = get_user_model()


class FileSerializer(serializers.ModelSerializer):
    """Read-only view of a record for one requester.

    Expects ``requester_id`` in the serializer context; ownership and
    the visibility label depend on who is asking.
    """

    ownerId = serializers.IntegerField(source='owner_id', read_only=True)
    fileName = serializers.CharField(source='display_name', read_only=True)
    fileMimeType = serializers.CharField(source='mime_type', read_only=True)
    sizeBytes = serializers.IntegerField(source='size_bytes', read_only=True)
    isPublic = serializers.BooleanField(source='is_public', read_only=True)
    isOwner = serializers.SerializerMethodField()
    visibility = serializers.SerializerMethodField()
    category = serializers.SerializerMethodField()
    uploadDate = serializers.DateTimeField(source='uploaded_at', read_only=True)

    class Meta:
        model = File
        fields: ClassVar[list[str]] = [
            'id',
            'ownerId',
            'fileName',
            'fileMimeType',
            'sizeBytes',
            'isPublic',
            'isOwner',
            'visibility',
            'category',
            'uploadDate',
        ]

    def get_isOwner(self, obj: File) -> bool:  # noqa: N802
        return is_owner(self.context['requester_id'], obj)

    def get_visibility(self, obj: File) -> str:
        return visibility_label(self.context['requester_id'], obj).value

    def get_category(self, obj: File) -> str:
        return classify_mime_type(obj.mime_type).value


class UploadSerializer(serializers.Serializer):
    """Multipart upload: the ``file`` part plus an optional ``isPublic``."""

    file = serializers.FileField()
    isPublic = serializers.BooleanField(default=False)


class RenameSerializer(serializers.Serializer):
    """Rename request body.

    Length rules are left to the lifecycle manager, which checks access
    before it looks at the name.
    """

    newName = serializers.CharField(allow_blank=True, trim_whitespace=False)


class VisibilitySerializer(serializers.Serializer):
    """Visibility request body."""

    isPublic = serializers.BooleanField()


class LoginSerializer(serializers.Serializer):
    """Login request body."""

    username = serializers.CharField()
    password = serializers.CharField(trim_whitespace=False)


class RegisterSerializer(serializers.Serializer):
    """Registration request body, creating an active user."""

    username = serializers.CharField(
        max_length=User._meta.get_field('username').max_length,
    )
    email = serializers.EmailField(required=False, allow_blank=True)
    password = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate_password(self, value: str) -> str:
        try:
            password_validation.validate_password(value)
        except DjangoValidationError as error:
            raise serializers.ValidationError(list(error.messages)) from error
        return value

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        taken = User.objects.filter(username=attrs['username'])
        if attrs.get('email'):
            taken = taken | User.objects.filter(email__iexact=attrs['email'])
        if taken.exists():
            raise serializers.ValidationError('User already exists')
        return attrs

    def create(self, validated_data: dict[str, Any]) -> Any:
        try:
            with transaction.atomic():
                return User.objects.create_user(
                    username=validated_data['username'],
                    email=validated_data.get('email', ''),
                    password=validated_data['password'],
                )
        except IntegrityError as error:
            # Lost a race with a concurrent registration
            raise serializers.ValidationError('User already exists') from error
