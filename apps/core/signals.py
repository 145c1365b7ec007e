# apps/core/signals.py

import logging

from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from .models import Project, ProjectMember, Task, TimeEntry

logger = logging.getLogger(__name__)


@receiver(post_save, sender=Project)
def criar_membro_dono(sender, instance, created, **kwargs):
    """
    Garante que o dono de um projeto novo seja membro OWNER
    """
    if created:
        ProjectMember.objects.get_or_create(
            project=instance,
            user=instance.owner,
            defaults={'role': ProjectMember.ROLE_OWNER},
        )


@receiver(pre_save, sender=TimeEntry)
def calcular_duracao_automatica(sender, instance, **kwargs):
    """
    Calcula duração automaticamente quando o fim é definido
    e nenhuma duração foi informada
    """
    if instance.end_time and instance.duration is None:
        instance.duration = instance.compute_duration()


@receiver(pre_save, sender=Task)
def registrar_conclusao(sender, instance, **kwargs):
    """
    Registra no log quando uma tarefa passa para DONE
    """
    if not instance.pk or instance.status != Task.STATUS_DONE:
        return

    anterior = sender.objects.filter(pk=instance.pk).values_list('status', flat=True).first()
    if anterior is not None and anterior != Task.STATUS_DONE:
        logger.info(f"✅ Tarefa '{instance.title}' concluída")
