# Export commands module

from .results import export_exam_results

__all__ = [
    "export_exam_results",
]
