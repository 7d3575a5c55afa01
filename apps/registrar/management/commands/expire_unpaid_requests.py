# registrar/management/commands/expire_unpaid_requests.py

"""
Expire document requests whose payment deadline has passed.

Meant to be run by cron (or any scheduler) every few minutes:

# Expire everything overdue
python manage.py expire_unpaid_requests

# Only list what would be expired
python manage.py expire_unpaid_requests --dry-run
"""

from django.core.management.base import BaseCommand
import logging

from registrar.models import DocumentRequest
from registrar.services import RequestWorkflow
from registrar.utils import get_current_time

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Move unpaid document requests past their payment deadline to Payment Expired'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List overdue requests without changing them'
        )

    def handle(self, *args, **options):
        now = get_current_time()

        if options['dry_run']:
            overdue = DocumentRequest.objects.overdue(now).order_by('payment_deadline')
            for request in overdue:
                self.stdout.write(
                    f"{request.request_number} (deadline {request.payment_deadline:%Y-%m-%d %H:%M})"
                )
            self.stdout.write(self.style.WARNING(
                f"Dry run: {overdue.count()} request(s) would be expired"
            ))
            return

        results = RequestWorkflow().expire_overdue_requests(now=now)
        expired = [result for result in results if result]
        skipped = [result for result in results if not result]

        for result in skipped:
            self.stdout.write(self.style.WARNING(f"Skipped: {result.error.message}"))

        logger.info(f"expire_unpaid_requests finished: {len(expired)} expired, {len(skipped)} skipped")
        self.stdout.write(self.style.SUCCESS(f"Expired {len(expired)} request(s)"))
