"""
Collaborators of the conversion core.

Modules:
    decoder: Workbook bytes → Workbook of sparse grids (openpyxl, xlrd)
    sources: Input classification and SourceResolver protocol
    monitor: PerformanceMonitor protocol and static default
"""
