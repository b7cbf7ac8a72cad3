# finvue/outputs/base.py
from abc import ABC, abstractmethod

class BaseOutput(ABC):
    @abstractmethod
    def append(self, transactions, path=None):
        """Write transactions to the chosen sink and return its location."""
        pass
