# apps/core/management/commands/send_deadline_reminders.py

from django.conf import settings
from django.core.management.base import BaseCommand

from apps.core.notifications import send_deadline_reminders


class Command(BaseCommand):
    help = 'Envia lembretes de prazo para tarefas que vencem em breve (rodar via cron)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--hours',
            type=int,
            default=settings.TRACKBOARD_DEADLINE_REMINDER_HOURS,
            help='Janela em horas a partir de agora (padrão: TRACKBOARD_DEADLINE_REMINDER_HOURS)'
        )

    def handle(self, *args, **options):
        total = send_deadline_reminders(within_hours=options['hours'])
        self.stdout.write(self.style.SUCCESS(f'⏰ {total} lembretes enviados'))
