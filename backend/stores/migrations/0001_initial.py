# Generated manually
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Store',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('slug', models.SlugField(max_length=100, unique=True)),
                ('logo_url', models.URLField(blank=True, null=True)),
                ('primary_color', models.CharField(default='#0f172a', max_length=7)),
                ('secondary_color', models.CharField(default='#64748b', max_length=7)),
                ('border_radius', models.CharField(default='0.5rem', max_length=20)),
                ('whatsapp_primary', models.CharField(blank=True, max_length=20, null=True)),
                ('whatsapp_secondary', models.CharField(blank=True, max_length=20, null=True)),
                ('catalog_config', models.JSONField(blank=True, default=dict)),
                ('catalog_config_updated_at', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'stores',
                'ordering': ['name'],
            },
        ),
    ]
