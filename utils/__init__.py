from .run_manager import RunManager, export_results, convert_numpy

__all__ = [
    'RunManager',
    'export_results',
    'convert_numpy',
]
