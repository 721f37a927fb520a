"""
Domain exceptions for the jewellery ledger.

Malformed numbers and undetermined GST types are not errors here; the
calculators absorb those. These exceptions cover the failures that must
stop a voucher from being saved.
"""


class JewelLedgerError(Exception):
    """Base exception for ledger errors."""
    pass


class LedgerNotFoundError(JewelLedgerError, LookupError):
    """Raised when a customer's ledger balances cannot be found."""
    pass


class VoucherNotFoundError(JewelLedgerError, LookupError):
    """Raised when a voucher to edit, cancel or delete is not on the ledger."""
    pass


class VoucherValidationError(JewelLedgerError, ValueError):
    """Raised when a voucher is incomplete. ``errors`` maps form fields to messages."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        first = next(iter(self.errors.values()), "Invalid voucher")
        super().__init__(first)


class LedgerStoreError(JewelLedgerError, RuntimeError):
    """Raised when the ledger store fails after retries."""
    pass
