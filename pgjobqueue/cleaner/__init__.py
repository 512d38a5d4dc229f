"""
Cleaner module.
Contains the periodic retention sweep for terminal jobs.
"""

from pgjobqueue.cleaner.main import Cleaner, run

__all__ = ["Cleaner", "run"]
