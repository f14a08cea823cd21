"""
Management command to resolve a brand into a scored profile.

Usage:
    django-admin resolve_brand "Tove"
    django-admin resolve_brand "Tove" "Khaite" --json
"""

import json

from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand, CommandError

from curation.api import resolve_brand
from curation.services.quality_scorer import determine_tier, get_missing_fields


class Command(BaseCommand):
    help = "Resolve brand names into price range, size range, categories and quality score"

    def add_arguments(self, parser):
        parser.add_argument("brands", nargs="+", help="Brand names to resolve")
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print each profile as JSON",
        )

    def handle(self, *args, **options):
        for brand_name in options["brands"]:
            try:
                profile = async_to_sync(resolve_brand)(brand_name)
            except ValueError as e:
                raise CommandError(str(e))

            if options["json"]:
                self.stdout.write(json.dumps(profile.to_dict(), indent=2))
                continue

            tier = determine_tier(profile.quality_score)
            self.stdout.write(self.style.SUCCESS(
                f"{profile.name}: score {profile.quality_score} ({tier})"
            ))
            self.stdout.write(f"  Domain:     {profile.official_domain or '-'}")
            self.stdout.write(f"  Price:      {profile.price_range_bucket or '-'}")
            self.stdout.write(f"  Sizes:      {profile.size_range_label or '-'}")
            self.stdout.write(f"  Categories: {', '.join(profile.categories)}")
            self.stdout.write(f"  Products:   {len(profile.products)}")
            for field_name, tag in profile.data_completeness.items():
                self.stdout.write(f"    {field_name}: {tag}")

            missing = get_missing_fields(profile.data_completeness)
            if missing:
                self.stdout.write(self.style.WARNING(f"  Needs review: {', '.join(missing)}"))
