class RetailerNotFound(Exception):
    """The referenced retailer does not exist."""


class CreditLimitExceeded(Exception):
    """A credit order would take the retailer past its credit limit."""
