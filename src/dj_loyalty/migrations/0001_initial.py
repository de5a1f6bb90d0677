from decimal import Decimal

from django.db import migrations, models


POOL_CHOICES = [
    ("global", "Global"),
    ("town_ticks", "TownTicks platform"),
    ("business", "Business"),
    ("individual_business", "Individual business"),
]

TIER_CHOICES = [
    ("bronze", "Bronze"),
    ("silver", "Silver"),
    ("gold", "Gold"),
    ("platinum", "Platinum"),
]


def amount_field():
    return models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=20)


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Balance",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                (
                    "pool",
                    models.CharField(choices=POOL_CHOICES, default="global", max_length=32),
                ),
                ("business_id", models.CharField(blank=True, default="", max_length=64)),
                ("points_issued", amount_field()),
                ("points_redeemed", amount_field()),
                ("points_transferred", amount_field()),
                ("points_gifted", amount_field()),
                ("points_expired", amount_field()),
                ("points_available", amount_field()),
                ("cashback_issued", amount_field()),
                ("cashback_redeemed", amount_field()),
                ("cashback_available", amount_field()),
                (
                    "current_tier",
                    models.CharField(choices=TIER_CHOICES, default="bronze", max_length=16),
                ),
                (
                    "tier_multiplier",
                    models.DecimalField(decimal_places=2, default=Decimal("1.00"), max_digits=6),
                ),
                ("last_updated", models.DateTimeField(auto_now=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Balance",
                "verbose_name_plural": "Balances",
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["business_id", "pool"], name="balance_business_pool_idx"
                    )
                ],
                "unique_together": {("user_id", "pool", "business_id")},
            },
        ),
        migrations.CreateModel(
            name="LoyaltyProfile",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "owner_type",
                    models.CharField(
                        choices=[("user", "User"), ("business", "Business")], max_length=16
                    ),
                ),
                ("owner_id", models.CharField(max_length=64)),
                ("allow_issue", models.BooleanField(blank=True, null=True)),
                ("allow_cashback", models.BooleanField(blank=True, null=True)),
                ("allow_import", models.BooleanField(blank=True, null=True)),
                ("allow_export", models.BooleanField(blank=True, null=True)),
                (
                    "milestone_bonus_multiplier",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True),
                ),
                (
                    "tier_bonus_points",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=20, null=True),
                ),
                ("milestone_thresholds", models.JSONField(blank=True, null=True)),
                ("tier_multipliers", models.JSONField(blank=True, null=True)),
                (
                    "min_redeem_points",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=20, null=True),
                ),
                (
                    "max_redeem_points",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=20, null=True),
                ),
                (
                    "min_issue_points",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=20, null=True),
                ),
                (
                    "max_issue_points",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=20, null=True),
                ),
                ("is_active", models.BooleanField(default=True)),
                ("preferences", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Loyalty profile",
                "verbose_name_plural": "Loyalty profiles",
                "abstract": False,
                "unique_together": {("owner_type", "owner_id")},
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "transaction_id",
                    models.CharField(editable=False, max_length=64, unique=True),
                ),
                ("user_id", models.CharField(db_index=True, max_length=64)),
                (
                    "pool",
                    models.CharField(choices=POOL_CHOICES, default="global", max_length=32),
                ),
                ("business_id", models.CharField(blank=True, default="", max_length=64)),
                ("business_user_id", models.CharField(blank=True, default="", max_length=64)),
                ("recipient_user_id", models.CharField(blank=True, default="", max_length=64)),
                ("recipient_email", models.EmailField(blank=True, default="", max_length=254)),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("issue", "Issue"),
                            ("redeem", "Redeem"),
                            ("gift", "Gift"),
                            ("transfer", "Transfer"),
                            ("import", "Import"),
                            ("export", "Export"),
                            ("expire", "Expire"),
                            ("cashback_issue", "Cashback issue"),
                            ("cashback_redeem", "Cashback redeem"),
                            ("milestone_bonus", "Milestone bonus"),
                            ("tier_bonus", "Tier bonus"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "point_type",
                    models.CharField(
                        choices=[
                            ("regular", "Regular"),
                            ("bonus", "Bonus"),
                            ("special", "Special"),
                            ("welcome", "Welcome"),
                            ("referral", "Referral"),
                            ("milestone", "Milestone"),
                            ("tier", "Tier"),
                        ],
                        default="regular",
                        max_length=16,
                    ),
                ),
                ("points_amount", amount_field()),
                ("cash_amount", amount_field()),
                ("cashback_amount", amount_field()),
                (
                    "tier_multiplier",
                    models.DecimalField(decimal_places=2, default=Decimal("1.00"), max_digits=6),
                ),
                ("bonus_points", amount_field()),
                ("source_pool", models.CharField(blank=True, default="", max_length=128)),
                ("destination_pool", models.CharField(blank=True, default="", max_length=128)),
                ("milestone_reached", models.CharField(blank=True, default="", max_length=32)),
                ("tier_upgraded", models.CharField(blank=True, default="", max_length=16)),
                ("marker", models.CharField(blank=True, default="", max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="completed",
                        max_length=16,
                    ),
                ),
                ("qr_code_data", models.TextField(blank=True, default="")),
                ("description", models.TextField(blank=True, default="")),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                "verbose_name": "Transaction",
                "verbose_name_plural": "Transactions",
                "ordering": ("-created_at", "-id"),
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["user_id", "transaction_type", "created_at"],
                        name="txn_user_type_created_idx",
                    ),
                    models.Index(
                        fields=["business_id", "created_at"], name="txn_business_created_idx"
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("marker", ""), _negated=True),
                        fields=("user_id", "pool", "business_id", "transaction_type", "marker"),
                        name="txn_unique_award_marker",
                    )
                ],
            },
        ),
    ]
