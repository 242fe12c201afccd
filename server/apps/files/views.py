"""Django REST framework views for the files API.

Views resolve the requester once (``request.user``, set by
SignedTokenAuthentication), hand its id to the lifecycle manager and let
the files exception handler translate errors into responses.
"""

import logging
from uuid import UUID

from django.http import FileResponse
from rest_framework import permissions, status, views
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.request import Request
from rest_framework.response import Response

from server.apps.files.exceptions import InvalidFileInputError
from server.apps.files.infrastructure.credentials import (
    authenticate_credentials,
    issue_token,
)
from server.apps.files.logic.file_operations import (
    FileListFilter,
    get_file_manager,
)
from server.apps.files.models import File
from server.apps.files.serializers import (
    FileSerializer,
    LoginSerializer,
    RegisterSerializer,
    RenameSerializer,
    UploadSerializer,
    VisibilitySerializer,
)

logger = logging.getLogger(__name__)


def _file_data(record: File, request: Request) -> dict:
    return FileSerializer(
        record,
        context={'requester_id': request.user.pk},
    ).data


class LoginView(views.APIView):
    """Exchange a username and password for a token."""

    authentication_classes = ()
    permission_classes = (permissions.AllowAny,)

    def post(self, request: Request) -> Response:
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = authenticate_credentials(
            serializer.validated_data['username'],
            serializer.validated_data['password'],
            request=request,
        )
        return Response({'token': issue_token(user)})


class RegisterView(views.APIView):
    """Create an account and return a token for it."""

    authentication_classes = ()
    permission_classes = (permissions.AllowAny,)

    def post(self, request: Request) -> Response:
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        logger.info('User registered: %s', user.username)
        return Response(
            {'token': issue_token(user)},
            status=status.HTTP_201_CREATED,
        )


class FileListView(views.APIView):
    """List files visible to the requester, newest first."""

    def get(self, request: Request) -> Response:
        raw_filter = request.query_params.get(
            'filter',
            FileListFilter.ALL.value,
        )
        try:
            list_filter = FileListFilter(raw_filter)
        except ValueError as error:
            raise InvalidFileInputError(
                f'Unknown filter: {raw_filter}',
            ) from error

        records = get_file_manager().list_files(request.user.pk, list_filter)
        serializer = FileSerializer(
            records,
            many=True,
            context={'requester_id': request.user.pk},
        )
        return Response(serializer.data)


class FileUploadView(views.APIView):
    """Upload a file from the ``file`` multipart field."""

    parser_classes = (MultiPartParser, FormParser)

    def post(self, request: Request) -> Response:
        serializer = UploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        uploaded = serializer.validated_data['file']

        record = get_file_manager().upload(
            request.user.pk,
            uploaded,
            uploaded.name,
            mime_type=uploaded.content_type,
            is_public=serializer.validated_data['isPublic'],
        )
        return Response(
            {
                'msg': 'File uploaded and saved!',
                'file': _file_data(record, request),
            },
            status=status.HTTP_201_CREATED,
        )


class FileDetailView(views.APIView):
    """Rename (PATCH with ``newName``) or delete a file."""

    def patch(self, request: Request, file_id: UUID) -> Response:
        serializer = RenameSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        record = get_file_manager().rename(
            request.user.pk,
            file_id,
            serializer.validated_data['newName'],
        )
        return Response(_file_data(record, request))

    def delete(self, request: Request, file_id: UUID) -> Response:
        get_file_manager().delete(request.user.pk, file_id)
        return Response({'msg': 'File deleted successfully.'})


class FileVisibilityView(views.APIView):
    """Share or unshare a file (``isPublic`` in the JSON body)."""

    def patch(self, request: Request, file_id: UUID) -> Response:
        serializer = VisibilitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        record = get_file_manager().set_visibility(
            request.user.pk,
            file_id,
            serializer.validated_data['isPublic'],
        )
        return Response(_file_data(record, request))


class FileDownloadView(views.APIView):
    """Stream a file as an attachment under its current name."""

    def get(self, request: Request, file_id: UUID) -> FileResponse:
        result = get_file_manager().download(request.user.pk, file_id)
        return FileResponse(
            result.stream,
            as_attachment=True,
            filename=result.display_name,
            content_type=result.mime_type,
        )


class FileDownloadUrlView(views.APIView):
    """Return a time-limited retrieval URL for a file."""

    def get(self, request: Request, file_id: UUID) -> Response:
        url = get_file_manager().download_url(request.user.pk, file_id)
        return Response({'url': url})
