# apps/__init__.py

"""
Trackboard - Aplicações Django

Este pacote contém todas as aplicações do sistema:
- core: Models, autenticação, usuários, papéis e notificações
- projects: Projetos e tarefas
- board: Kanban, comentários, controle de tempo e WebSockets
- reports: Dashboard e exportações PDF, Excel e CSV
"""

__version__ = '0.1.0'
