"""
Core mixins for ecoassim modules.

Usage:
    from ecoassim.core.mixins import TimingMixin

    class MyWorkflow(TimingMixin):
        def run(self):
            with self.time_limit("forecast"):
                ...
"""

from .timing import TimingMixin

__all__ = [
    "TimingMixin",
]
