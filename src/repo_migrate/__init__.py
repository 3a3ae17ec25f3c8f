"""Repository Migration Orchestrator

Plans, sequences and controls bulk migration of source repositories to a
destination platform: dependency-aware waves, batch lifecycle and
authorization-gated operations.
"""

__version__ = '0.1.0'
__author__ = 'Repository Migration Team'
__email__ = 'team@example.com'

from .cli.main import main

__all__ = ['main']
