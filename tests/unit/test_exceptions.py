"""Unit tests for the exception hierarchy and error codes."""

import pytest

from estate_kernel import exceptions as exc


class TestHierarchy:

    @pytest.mark.parametrize(
        "error, parent",
        [
            (exc.DuplicateAccountNumberError("1010"), exc.ValidationError),
            (exc.DuplicateInvoiceNumberError("INV-2024-0001"), exc.ValidationError),
            (exc.AccountNotFoundError("9999"), exc.NotFoundError),
            (exc.BillNotFoundError("b"), exc.NotFoundError),
            (exc.TemplateNotFoundError("payment_received"), exc.NotFoundError),
            (exc.EntryAlreadyVoidError("e"), exc.InvalidStateError),
            (exc.EntryAlreadyReversedError("e", "r"), exc.InvalidStateError),
            (exc.SystemAccountError("1010"), exc.InvalidStateError),
            (exc.ExpenseStateError("x", "pending", "unpaid", "pay"), exc.InvalidStateError),
            (exc.SubledgerEntryError("bill", "void", "e"), exc.InvalidStateError),
        ],
    )
    def test_parents(self, error, parent):
        assert isinstance(error, parent)
        assert isinstance(error, exc.EstateLedgerError)

    def test_codes_are_unique(self):
        classes = [
            obj
            for obj in vars(exc).values()
            if isinstance(obj, type) and issubclass(obj, exc.EstateLedgerError)
        ]
        codes = [cls.code for cls in classes]
        assert len(codes) == len(set(codes))


class TestContext:

    def test_overpayment_carries_amounts(self):
        error = exc.OverpaymentError("bill-1", "600.00", "500.00")
        assert error.code == "OVERPAYMENT"
        assert error.amount == "600.00"
        assert error.balance == "500.00"
        assert "500.00" in str(error)

    def test_unbalanced_entry(self):
        error = exc.UnbalancedEntryError("100.00", "90.00")
        assert error.debits == "100.00"
        assert error.credits == "90.00"

    def test_account_referenced_message(self):
        error = exc.AccountReferencedError("5010", 3, "journal line(s)")
        assert error.reference_count == 3
        assert "5010" in str(error)
        assert "journal line(s)" in str(error)

    def test_validation_error_field(self):
        assert exc.DuplicateInvoiceNumberError("INV-1").field == "invoice_number"
