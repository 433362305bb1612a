import django.core.validators
from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='PlannedTrip',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('current_location', models.CharField(help_text='Starting location address', max_length=500)),
                ('pickup_location', models.CharField(help_text='Pickup location address', max_length=500)),
                ('dropoff_location', models.CharField(help_text='Dropoff location address', max_length=500)),
                ('current_cycle_used_hours', models.FloatField(default=0, help_text='Hours already used in the 8-day cycle', validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(70)])),
                ('start_time', models.DateTimeField(help_text='When the driver leaves the current location')),
                ('total_distance_miles', models.FloatField(default=0)),
                ('total_driving_hours', models.FloatField(default=0)),
                ('estimated_arrival', models.DateTimeField(blank=True, null=True)),
                ('log_days', models.IntegerField(default=0)),
                ('violation_count', models.IntegerField(default=0)),
                ('report', models.JSONField(default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Planned Trip',
                'verbose_name_plural': 'Planned Trips',
                'ordering': ['-created_at'],
            },
        ),
    ]
