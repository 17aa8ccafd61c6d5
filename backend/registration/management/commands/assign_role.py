from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from registration.access_policy import DISTRICT_SCOPED_ROLES
from registration.domain_actors import ActorProfile, Role


class Command(BaseCommand):
    help = "Set a user's workflow role and district scope (creates the actor profile if missing)."

    def add_arguments(self, parser):
        parser.add_argument("username")
        parser.add_argument("role", choices=Role.values)
        parser.add_argument("--district", default=None, help="Required for scrutiny clerks and district reviewers.")
        parser.add_argument("--inactive", action="store_true", help="Mark the profile inactive.")

    def handle(self, *args, **options):
        User = get_user_model()
        user = User.objects.filter(username=options["username"]).first()
        if user is None:
            raise CommandError(f"User '{options['username']}' does not exist.")
        role = options["role"]
        district = (options["district"] or "").strip() or None
        if role in DISTRICT_SCOPED_ROLES and not district:
            raise CommandError(f"--district is required for role '{role}'.")

        profile, created = ActorProfile.objects.get_or_create(user=user)
        profile.role = role
        profile.district = district
        profile.is_active = not options["inactive"]
        profile.save()

        verb = "Created" if created else "Updated"
        scope = f" in {district}" if district else ""
        self.stdout.write(self.style.SUCCESS(f"{verb} profile: {user.username} is {role}{scope}."))
