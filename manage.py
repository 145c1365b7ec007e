#!/usr/bin/env python
"""
Django's command-line utility for administrative tasks.

Trackboard - API de gestão de projetos
"""

import os
import sys


def main():
    """Run administrative tasks."""

    # Configuração padrão para desenvolvimento
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    # Atalhos do Trackboard
    if len(sys.argv) > 1:
        command = sys.argv[1]

        # Setup inicial: migrações + dados demo
        if command == 'setup':
            print("🚀 Configurando Trackboard...")

            print("📊 Aplicando migrações...")
            if os.system(f'{sys.executable} manage.py migrate') != 0:
                print("❌ Erro nas migrações")
                return

            print("🌱 Populando banco com dados demo...")
            os.system(f'{sys.executable} manage.py seed')

            print("✅ Setup concluído!")
            print("🔑 Acesse com: admin@trackboard.dev / Admin@123")
            return

        elif command == 'backup':
            print("💾 Criando backup do banco...")
            from datetime import datetime
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            backup_file = f"backup_trackboard_{timestamp}.json"
            os.system(f'{sys.executable} manage.py dumpdata core --indent 2 > {backup_file}')
            print(f"✅ Backup criado: {backup_file}")
            return

    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
