from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("notifications", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="notification",
            name="claimed_at",
            field=models.DateTimeField(
                blank=True,
                help_text="When a worker took the row for delivery",
                null=True,
            ),
        ),
    ]
