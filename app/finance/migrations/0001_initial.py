import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Transaction",
            fields=[
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
                    "is_deleted",
                    models.BooleanField(
                        db_index=True,
                        default=False,
                        help_text="Whether this record has been soft deleted",
                    ),
                ),
                (
                    "deleted_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Timestamp when this record was soft deleted",
                        null=True,
                    ),
                ),
                (
                    "deleted_by",
                    models.CharField(
                        blank=True,
                        help_text="Identifier of the actor who soft deleted this record",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("income", "Income"),
                            ("expense", "Expense"),
                            ("adjustment", "Adjustment"),
                        ],
                        help_text="Kind of monetary movement",
                        max_length=20,
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("product_sale", "Product Sale"),
                            ("service_payment", "Service Payment"),
                            ("subscription", "Subscription"),
                            ("commission", "Commission"),
                            ("refund", "Refund"),
                            ("salary", "Salary"),
                            ("rent", "Rent"),
                            ("utilities", "Utilities"),
                            ("marketing", "Marketing"),
                            ("software", "Software"),
                            ("equipment", "Equipment"),
                            ("taxes", "Taxes"),
                            ("adjustment", "Adjustment"),
                            ("other", "Other"),
                        ],
                        default="other",
                        help_text="Reporting category",
                        max_length=50,
                    ),
                ),
                (
                    "amount_in_usd",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Signed amount in USD (expenses stored negative)",
                        max_digits=14,
                    ),
                ),
                (
                    "transaction_date",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        help_text="When the movement happened",
                    ),
                ),
                (
                    "reference_id",
                    models.CharField(
                        blank=True,
                        help_text="Identifier of the related external record",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "reference_type",
                    models.CharField(
                        blank=True,
                        help_text="Kind of related record (e.g. 'payment')",
                        max_length=50,
                        null=True,
                    ),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[
                            ("manual", "Manual"),
                            ("payment_auto", "Payment (automatic)"),
                        ],
                        default="manual",
                        help_text="How the transaction was created",
                        max_length=20,
                    ),
                ),
                (
                    "description",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Free-text note",
                        max_length=500,
                    ),
                ),
                (
                    "created_by",
                    models.CharField(
                        blank=True,
                        help_text="Identifier of the actor that created this entry",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Arbitrary JSON data",
                    ),
                ),
            ],
            options={
                "ordering": ["-transaction_date", "-created_at"],
                "abstract": False,
            },
        ),
        migrations.AddIndex(
            model_name="transaction",
            index=models.Index(
                fields=["type", "-transaction_date"],
                name="finance_txn_type_date_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="transaction",
            index=models.Index(
                fields=["category", "-transaction_date"],
                name="finance_txn_category_date_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="transaction",
            index=models.Index(fields=["source"], name="finance_txn_source_idx"),
        ),
        migrations.AddIndex(
            model_name="transaction",
            index=models.Index(fields=["reference_id"], name="finance_txn_reference_idx"),
        ),
        migrations.AddConstraint(
            model_name="transaction",
            constraint=models.UniqueConstraint(
                condition=models.Q(("is_deleted", False), ("source", "payment_auto")),
                fields=("reference_id", "source"),
                name="finance_unique_active_auto_entry",
            ),
        ),
    ]
