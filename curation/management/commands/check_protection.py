"""
Management command to show the known protection profile of a domain.

Usage:
    django-admin check_protection https://www.saksfifthavenue.com/product/123
    django-admin check_protection nordstrom.com revolve.com
"""

from django.core.management.base import BaseCommand

from curation.api import check_protection
from curation.fetchers.protection import requires_confirmation


class Command(BaseCommand):
    help = "Show anti-automation protection level for domains or URLs"

    def add_arguments(self, parser):
        parser.add_argument("targets", nargs="+", help="Domains or URLs")

    def handle(self, *args, **options):
        for target in options["targets"]:
            profile = check_protection(target)

            if not profile.is_known:
                self.stdout.write(f"{profile.domain}: no known protection")
                continue

            line = (
                f"{profile.domain}: {profile.protection_level.value} "
                f"(success rate {profile.observed_success_rate:.0%})"
            )
            if requires_confirmation(profile):
                self.stdout.write(self.style.ERROR(line + " - confirmation required"))
            else:
                self.stdout.write(self.style.WARNING(line))
            if profile.recommendation:
                self.stdout.write(f"  {profile.recommendation}")
