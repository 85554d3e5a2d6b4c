from .users import User, ROLE_ADMIN, ROLE_OPERATOR, ROLES
from .customers import Customer
from .transactions import Transaction, newest_first
from .sequences import IdentifierSequence, by_sequence

__all__ = [
    'User', 'ROLE_ADMIN', 'ROLE_OPERATOR', 'ROLES',
    'Customer',
    'Transaction', 'newest_first',
    'IdentifierSequence', 'by_sequence',
]
