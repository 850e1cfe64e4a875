from django.db import migrations, models


def backfill_anchor_day(apps, schema_editor):
    RecurringTemplate = apps.get_model("ledger_core", "RecurringTemplate")
    # existing schedules keep the day they were started on
    for tpl in RecurringTemplate.objects.all():
        tpl.anchor_day = tpl.start_date.day
        tpl.save(update_fields=["anchor_day"])


class Migration(migrations.Migration):

    dependencies = [
        ("ledger_core", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="recurringtemplate",
            name="anchor_day",
            field=models.PositiveSmallIntegerField(blank=True, editable=False, null=True),
        ),
        migrations.AddField(
            model_name="recurringtemplate",
            name="claimed_at",
            field=models.DateTimeField(blank=True, null=True),
        ),
        migrations.RunPython(backfill_anchor_day, reverse_code=migrations.RunPython.noop),
    ]
