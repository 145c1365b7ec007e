# apps/projects/__init__.py

"""
Projects - Projetos e tarefas do Trackboard

Funcionalidades:
- CRUD de projetos com soft delete
- CRUD de tarefas com subtarefas, filtros e ordenação
- Estatísticas de projetos e tarefas
"""
