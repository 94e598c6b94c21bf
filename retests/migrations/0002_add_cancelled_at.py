# Add cancelled_at so a cancelled retest stays closed even at window_start

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('retests', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='retestassignment',
            name='cancelled_at',
            field=models.DateTimeField(blank=True, null=True),
        ),
    ]
