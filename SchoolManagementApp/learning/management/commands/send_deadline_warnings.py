from django.core.management.base import BaseCommand

from SchoolManagementApp.domain.services.reminder_service import DeadlineReminder


class Command(BaseCommand):
    help = "Notify students who have not submitted work for approved projects due soon."

    def add_arguments(self, parser):
        parser.add_argument("--days", type=int, default=None, help="Warning window in days.")

    def handle(self, *args, **options):
        sent = DeadlineReminder().sweep(window_days=options["days"])
        self.stdout.write(self.style.SUCCESS(f"Sent {sent} deadline warnings"))
