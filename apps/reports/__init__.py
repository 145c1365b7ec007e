# apps/reports/__init__.py

"""
Reports - Dashboard e exportações do Trackboard

Funcionalidades:
- Dashboard com números rápidos e atividades recentes
- Relatório de projeto em PDF (ReportLab)
- Exportação Excel (xlsxwriter) e CSV
- Estatísticas compartilhadas de projetos, tarefas e tempo
"""
