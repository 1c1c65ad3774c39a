import time

from django.core.management.base import BaseCommand, CommandError

from academics.background import ResultPoller
from academics.repository import ResultRepository
from schools.models import School


class Command(BaseCommand):
    help = "Print score and result changes as they happen, polling the database at a fixed interval."

    def add_arguments(self, parser):
        parser.add_argument("--school", type=int, help="Only watch this school id")
        parser.add_argument("--interval", type=int, help="Seconds between polls")

    def handle(self, *args, **options):
        school = None
        if options.get("school"):
            school = School.objects.filter(pk=options["school"]).first()
            if school is None:
                raise CommandError(f"School {options['school']} does not exist.")

        poller = ResultPoller(
            ResultRepository(),
            self.report,
            interval_seconds=options.get("interval"),
            school=school,
        )
        poller.start()
        self.stdout.write(f"Watching result changes every {poller.interval_seconds}s. Ctrl+C to stop.")
        try:
            while poller.is_running:
                time.sleep(1)
        except KeyboardInterrupt:
            pass
        finally:
            poller.stop()
            self.stdout.write("Stopped.")

    def report(self, scores, results):
        for score in scores:
            self.stdout.write(
                f"score {score.pk}: {score.student} {score.subject_assignment.subject.name} -> {score.status}"
            )
        for result in results:
            self.stdout.write(f"result {result.pk}: {result.student} {result.term} -> {result.status}")
