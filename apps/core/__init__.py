# apps/core/__init__.py

"""
Core - Aplicação base do Trackboard

Contém:
- Models de todo o domínio (User, Project, Task, Comment, TimeEntry...)
- Autenticação por JWT e sistema de permissões por papel
- Views de auth, usuários, papéis e notificações
- Infraestrutura compartilhada (exceções, middleware, utilitários)
"""
