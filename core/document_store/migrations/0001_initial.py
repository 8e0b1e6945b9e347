from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="DocumentSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(max_length=32)),
                ("year", models.IntegerField()),
                ("last_value", models.IntegerField(default=0)),
            ],
            options={
                "db_table": "tradedocs_document_sequences",
                "ordering": ["kind", "year"],
            },
        ),
        migrations.CreateModel(
            name="StoredEntity",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(max_length=32)),
                ("entity_id", models.CharField(max_length=64)),
                ("status", models.CharField(blank=True, max_length=32, null=True)),
                ("payload", models.JSONField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "tradedocs_stored_entities",
                "ordering": ["id"],
            },
        ),
        migrations.AddConstraint(
            model_name="documentsequence",
            constraint=models.UniqueConstraint(
                fields=("kind", "year"), name="uq_document_sequence_kind_year",
            ),
        ),
        migrations.AddConstraint(
            model_name="storedentity",
            constraint=models.UniqueConstraint(
                fields=("kind", "entity_id"), name="uq_stored_entity_kind_id",
            ),
        ),
        migrations.AddIndex(
            model_name="storedentity",
            index=models.Index(fields=["kind", "status"], name="idx_stored_entity_status"),
        ),
    ]
