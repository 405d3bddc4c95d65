from .reporter import ProgressReporter

__all__ = ["ProgressReporter"]
