import uuid

from django.db import migrations, models

import toolkit.validators


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Business",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "name",
                    models.CharField(help_text="Business display name", max_length=255),
                ),
                (
                    "owner_phone",
                    models.CharField(
                        blank=True,
                        help_text="Owner phone number in E.164 format, used for SMS alerts",
                        max_length=32,
                        null=True,
                        validators=[toolkit.validators.validate_phone_number],
                    ),
                ),
                (
                    "owner_email",
                    models.EmailField(
                        blank=True,
                        help_text="Owner email address, used for email alerts",
                        max_length=254,
                        null=True,
                    ),
                ),
            ],
            options={
                "verbose_name": "business",
                "verbose_name_plural": "businesses",
                "db_table": "businesses",
                "ordering": ["name"],
            },
        ),
    ]
