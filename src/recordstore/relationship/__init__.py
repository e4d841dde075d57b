"""
Связи между моделями.

Relationship описывает направленную связь from → to; wire_relationship
регистрирует обе её стороны в моделях.
"""

from recordstore.relationship.relationship import Relationship, parse_reference, wire_relationship

__all__ = [
    "Relationship",
    "parse_reference",
    "wire_relationship",
]
