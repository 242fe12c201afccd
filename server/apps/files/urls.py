"""URL routes for the files API."""

from django.urls import path

from server.apps.files import views

app_name = 'files'

urlpatterns = [
    path('auth/login', views.LoginView.as_view(), name='login'),
    path('auth/register', views.RegisterView.as_view(), name='register'),
    path('files/', views.FileListView.as_view(), name='list'),
    path('files/upload', views.FileUploadView.as_view(), name='upload'),
    path(
        'files/<uuid:file_id>',
        views.FileDetailView.as_view(),
        name='detail',
    ),
    path(
        'files/<uuid:file_id>/visibility',
        views.FileVisibilityView.as_view(),
        name='visibility',
    ),
    path(
        'files/download/<uuid:file_id>',
        views.FileDownloadView.as_view(),
        name='download',
    ),
    path(
        'files/download/<uuid:file_id>/url',
        views.FileDownloadUrlView.as_view(),
        name='download-url',
    ),
]
