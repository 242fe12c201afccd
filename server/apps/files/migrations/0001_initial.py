import uuid

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
            name='File',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('display_name', models.CharField(help_text='User-visible file name', max_length=255, validators=[django.core.validators.MinLengthValidator(3)])),
                ('storage_key', models.CharField(editable=False, help_text='Blob store key: user-{owner_id}-{millis}-{token}-{name}', max_length=512, unique=True)),
                ('mime_type', models.CharField(editable=False, max_length=255)),
                ('size_bytes', models.BigIntegerField(editable=False, help_text='File size in bytes')),
                ('is_public', models.BooleanField(default=False, help_text='Public files are visible to every authenticated user')),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(editable=False, on_delete=django.db.models.deletion.PROTECT, related_name='files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-uploaded_at'],
                'indexes': [
                    models.Index(fields=['owner', '-uploaded_at'], name='files_owner_recent_idx'),
                    models.Index(fields=['is_public', '-uploaded_at'], name='files_public_recent_idx'),
                ],
            },
        ),
    ]
