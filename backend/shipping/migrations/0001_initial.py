import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('companies', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ShippingOption',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('name', models.TextField()),
                ('delivery_time', models.PositiveIntegerField()),
                ('starting_rate', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('draft', 'Draft')], default='active', max_length=16)),
                ('countries', models.JSONField(default=list)),
                ('free_for_subscribers', models.BooleanField(default=False)),
                ('country_sort_positions', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shipping_options', to='companies.company')),
            ],
            options={
                'db_table': 'shipping_options',
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['company', 'status'], name='ship_opt_company_status_idx'),
                    models.Index(fields=['free_for_subscribers'], name='ship_opt_free_subs_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Rate',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('country', models.CharField(max_length=2)),
                ('region', models.CharField(blank=True, max_length=64, null=True)),
                ('min_range_lbs', models.DecimalField(decimal_places=4, max_digits=8)),
                ('max_range_lbs', models.DecimalField(decimal_places=4, max_digits=8)),
                ('flat_rate', models.DecimalField(decimal_places=2, max_digits=10)),
                ('min_charge', models.DecimalField(decimal_places=2, max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('shipping_option', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rates', to='shipping.shippingoption')),
            ],
            options={
                'db_table': 'rates',
                'ordering': ['min_range_lbs', 'id'],
                'indexes': [
                    models.Index(fields=['shipping_option', 'country', 'region'], name='rates_option_location_idx'),
                    models.Index(fields=['country', 'region'], name='rates_country_region_idx'),
                ],
            },
        ),
    ]
