from django.core.management.base import BaseCommand

from registration.workflow_engine import to_mermaid, transition_graph


class Command(BaseCommand):
    help = "Print the application transition table as a Mermaid state diagram or as plain edges."

    def add_arguments(self, parser):
        parser.add_argument("--edges", action="store_true", help="Print one 'source -[action]-> target' line per edge.")

    def handle(self, *args, **options):
        if options["edges"]:
            for source, action, target in transition_graph():
                self.stdout.write(f"{source} -[{action}]-> {target}")
            return
        self.stdout.write(to_mermaid())
