from django.core.management.base import BaseCommand, CommandError

from market.seeding import SAMPLE_PASSWORD, is_admin_seeding_enabled, seed_marketplace


class Command(BaseCommand):
    help = "Clear the store and seed an admin account plus sample users and listings (development only)."

    def add_arguments(self, parser):
        parser.add_argument("--users", type=int, default=4)
        parser.add_argument("--listings-per-user", type=int, default=3)
        parser.add_argument("--admin-email", default="admin@souqify.local")
        parser.add_argument("--seed", type=int, default=1337)

    def handle(self, *args, **options):
        if not is_admin_seeding_enabled():
            raise CommandError("Seeding is disabled. Set ADMIN_SEEDING_ENABLED=true (or run with DEBUG=true).")

        result = seed_marketplace(
            users=options["users"],
            listings_per_user=options["listings_per_user"],
            admin_email=options["admin_email"],
            rng_seed=options["seed"],
        )

        self.stdout.write(self.style.SUCCESS(f"Seed complete: {result.as_dict()}"))
        # Printed once; the password is not stored anywhere in clear text.
        self.stdout.write(f"Admin login: {result.admin_email} / {result.admin_password}")
        self.stdout.write(f"Sample users: user1@souqify.local ... / {SAMPLE_PASSWORD}")
