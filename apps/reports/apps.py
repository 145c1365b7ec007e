# apps/reports/apps.py

import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class ReportsConfig(AppConfig):
    """Configuração da app Reports"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.reports'
    verbose_name = 'Reports - Dashboard, PDF & Exports'

    def ready(self):
        logger.info("Reports App inicializada - ReportLab habilitado")
