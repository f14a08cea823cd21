"""
Management command to scrape a batch of product URLs.

Usage:
    django-admin scrape_batch https://shop.example.com/p/1 https://shop.example.com/p/2
    django-admin scrape_batch --file urls.txt --confirm
"""

import asyncio
import json

from django.core.management.base import BaseCommand, CommandError

from curation.api import scrape_batch
from curation.services.batch_scraper import ConfirmationRequiredError
from curation.types import UrlStatus


class Command(BaseCommand):
    help = "Fetch and extract products from a batch of URLs"

    def add_arguments(self, parser):
        parser.add_argument("urls", nargs="*", help="Product URLs")
        parser.add_argument(
            "--file",
            type=str,
            help="Read URLs from a file, one per line",
        )
        parser.add_argument(
            "--confirm",
            action="store_true",
            help="Proceed even when domains need operator confirmation",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print each result as a JSON line",
        )

    def handle(self, *args, **options):
        urls = list(options["urls"])
        if options["file"]:
            try:
                with open(options["file"]) as f:
                    urls.extend(line.strip() for line in f if line.strip())
            except OSError as e:
                raise CommandError(f"Cannot read {options['file']}: {e}")

        if not urls:
            raise CommandError("No URLs provided")

        try:
            counts = asyncio.run(self._run(urls, options["confirm"], options["json"]))
        except ConfirmationRequiredError as e:
            for profile in e.profiles:
                self.stdout.write(self.style.ERROR(
                    f"{profile.domain}: {profile.protection_level.value}, "
                    f"success rate {profile.observed_success_rate:.0%}. {profile.recommendation}"
                ))
            raise CommandError(f"{e}. Re-run with --confirm to proceed.")

        self.stdout.write(self.style.SUCCESS(
            f"Done: {counts[UrlStatus.SUCCESS]} succeeded, "
            f"{counts[UrlStatus.FAILED]} failed, {counts[UrlStatus.SKIPPED]} skipped"
        ))

    async def _run(self, urls, confirmed, as_json):
        counts = {status: 0 for status in UrlStatus}
        async for result in scrape_batch(urls, confirmed=confirmed):
            counts[result.status] += 1
            if as_json:
                self.stdout.write(json.dumps(result.to_dict()))
            elif result.success:
                product = result.product
                price = f"${product.price:,.2f}" if product.price else "no price"
                self.stdout.write(self.style.SUCCESS(f"[ok] {result.url}: {product.name} ({price})"))
            elif result.status == UrlStatus.SKIPPED:
                self.stdout.write(self.style.WARNING(f"[skipped] {result.url}: {result.error}"))
            else:
                self.stdout.write(self.style.ERROR(
                    f"[{result.failure_reason.value}] {result.url}: {result.error}"
                ))
        return counts
