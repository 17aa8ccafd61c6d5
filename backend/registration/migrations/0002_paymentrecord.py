from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        ('registration', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='PaymentRecord',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('payment_reference', models.CharField(blank=True, db_column='gateway_transaction_id', default='', max_length=255)),
                ('payment_method', models.CharField(blank=True, db_column='payment_method', default='', max_length=50)),
                ('amount', models.DecimalField(blank=True, db_column='amount', decimal_places=2, max_digits=12, null=True)),
                ('expected_amount', models.DecimalField(db_column='expected_amount', decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('status', models.CharField(choices=[('success', 'Success'), ('failed', 'Failed'), ('refused', 'Refused')], db_column='payment_status', max_length=10)),
                ('detail', models.TextField(blank=True, db_column='detail', default='')),
                ('received_at', models.DateTimeField(db_column='received_at')),
                ('completed_at', models.DateTimeField(blank=True, db_column='completed_at', null=True)),
                ('application', models.ForeignKey(db_column='application_id', on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='registration.application')),
            ],
            options={
                'db_table': 'payment_record',
                'ordering': ['received_at', 'id'],
                'indexes': [
                    models.Index(fields=['application', 'status'], name='idx_payment_application'),
                    models.Index(fields=['payment_reference'], name='idx_payment_reference'),
                ],
            },
        ),
    ]
