"""Code analysis domain exports."""

from .analyzer import CodeAnalyser, get_code_analyser, local_analysis

__all__ = [
    'CodeAnalyser',
    'get_code_analyser',
    'local_analysis',
]
