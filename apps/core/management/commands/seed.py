# apps/core/management/commands/seed.py

from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.core.models import Comment, Project, ProjectMember, Task, TimeEntry, User


DEMO_PASSWORD = 'Demo@123'

DEMO_USERS = [
    # (email, nome, papel)
    ('manager@trackboard.dev', 'Marina Gerente', User.ROLE_MANAGER),
    ('ana@trackboard.dev', 'Ana Dev', User.ROLE_USER),
    ('bruno@trackboard.dev', 'Bruno Dev', User.ROLE_USER),
]

DEMO_TASKS = [
    # (título, status, prioridade, tipo, pontos)
    ('Configurar pipeline de deploy', Task.STATUS_DONE, 'HIGH', 'TASK', 3),
    ('Tela de login', Task.STATUS_IN_REVIEW, 'MEDIUM', 'FEATURE', 5),
    ('Corrigir timeout no upload', Task.STATUS_IN_PROGRESS, 'URGENT', 'BUG', 2),
    ('Relatório mensal de horas', Task.STATUS_TODO, 'LOW', 'STORY', 8),
]


class Command(BaseCommand):
    help = 'Popula o banco com usuários, projeto e tarefas de demonstração'

    def add_arguments(self, parser):
        parser.add_argument(
            '--admin-password',
            default='Admin@123',
            help='Senha do administrador criado (padrão: Admin@123)'
        )

    @transaction.atomic
    def handle(self, *args, **options):
        """
        Cria os dados demo de forma idempotente

        Rodar duas vezes não duplica nada: usuários são buscados por email
        e o projeto demo pelo nome.
        """
        self.stdout.write('🌱 Criando dados de demonstração...')

        admin = self._get_or_create_user(
            'admin@trackboard.dev', 'Administrador', User.ROLE_ADMIN,
            options['admin_password'], superuser=True
        )
        users = [
            self._get_or_create_user(email, name, role, DEMO_PASSWORD)
            for email, name, role in DEMO_USERS
        ]
        manager, ana, bruno = users

        project, created = Project.objects.get_or_create(
            name='Projeto Demo',
            defaults={
                'description': 'Projeto de exemplo criado pelo seed',
                'owner': admin,
                'created_by': admin,
                'start_date': timezone.now().date(),
            }
        )
        if not created:
            self.stdout.write(self.style.WARNING('⚠️  Projeto demo já existe, nada a fazer'))
            return

        # O dono vira OWNER pelo signal; os demais entram aqui
        for user, role in ((manager, ProjectMember.ROLE_ADMIN),
                           (ana, ProjectMember.ROLE_MEMBER),
                           (bruno, ProjectMember.ROLE_VIEWER)):
            ProjectMember.objects.get_or_create(project=project, user=user, defaults={'role': role})

        tasks = []
        for title, status, priority, task_type, points in DEMO_TASKS:
            tasks.append(Task.objects.create(
                project=project,
                title=title,
                status=status,
                priority=priority,
                type=task_type,
                story_points=points,
                assignee=ana,
                created_by=manager,
                due_date=timezone.now() + timedelta(days=7),
                position=Task.next_position(project, status),
            ))

        Comment.objects.create(
            task=tasks[1],
            project=project,
            author=manager,
            content='@Ana pode revisar o layout antes de subir?',
        )

        started = timezone.now() - timedelta(hours=3)
        TimeEntry.objects.create(
            task=tasks[2],
            user=ana,
            description='Investigação inicial',
            start_time=started,
            end_time=started + timedelta(minutes=90),
        )

        self.stdout.write(
            self.style.SUCCESS(
                f'✅ Seed concluído: {len(users) + 1} usuários, 1 projeto, {len(tasks)} tarefas\n'
                f'🔑 Admin: admin@trackboard.dev\n'
                f'🔑 Demais usuários: senha {DEMO_PASSWORD}'
            )
        )

    def _get_or_create_user(self, email, name, role, password, superuser=False):
        user = User.objects.filter(email=email).first()
        if user:
            return user

        if superuser:
            user = User.objects.create_superuser(email=email, password=password, name=name)
        else:
            user = User.objects.create_user(email=email, password=password, name=name, role=role)
        self.stdout.write(f'  👤 {user.email} ({user.role})')
        return user
