"""Domain models."""

from bankmirror.models.transaction import Balance, Binding, Transaction

__all__ = ["Balance", "Binding", "Transaction"]
