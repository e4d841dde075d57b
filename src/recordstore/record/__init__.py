"""
Записи и коллекции записей.

RecordSetWriter намеренно не экспортируется: мутировать коллекцию может
только её владелец (Model), получивший writer через open_record_set().
"""

from recordstore.record.record import Record
from recordstore.record.set import RecordSet, Scope

__all__ = [
    "Record",
    "RecordSet",
    "Scope",
]
