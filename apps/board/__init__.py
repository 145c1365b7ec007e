# apps/board/__init__.py

"""
Board - Aplicação Kanban do Trackboard

Funcionalidades:
- Quadro Kanban com movimentação de tarefas por status
- WebSockets para atualizações em tempo real
- Comentários encadeados com menções
- Controle de tempo (cronômetro e registros manuais)
"""
