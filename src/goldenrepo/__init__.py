"""
golden-repo-sync - Keeps golden repositories in sync with platform metadata
"""

__version__ = "0.1.0"

from .core import GoldenRepoSync, GoldenRepoError

__all__ = ["GoldenRepoSync", "GoldenRepoError"]
