"""
Tests del núcleo de documentos

- Cálculo de totales (propiedades con datos aleatorios y casos borde)
- Máquinas de estado de facturas y cotizaciones
- Numeración secuencial, números explícitos y concurrencia
- Nombre de archivo y generación de PDF
"""

import random
import threading
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from invoicer.common.exceptions import ConflictError, InvalidTransition, ValidationError
from invoicer.core.config import settings
from invoicer.database.database import Base, build_engine
from invoicer.modules.auth.models import User
from invoicer.modules.clients.schemas import ClientCreate
from invoicer.modules.clients.service import ClientService
from invoicer.modules.documents.lifecycle import INVOICE_LIFECYCLE, QUOTE_LIFECYCLE
from invoicer.modules.documents.models import DocumentType
from invoicer.modules.documents.numbering import DocumentNumberingService, format_number
from invoicer.modules.documents.pdf import document_filename, slugify
from invoicer.modules.documents.totals import compute_line_amount, compute_totals
from invoicer.modules.invoices.models import InvoiceStatus
from invoicer.modules.invoices.schemas import InvoiceCreate
from invoicer.modules.invoices.service import InvoiceService
from invoicer.modules.quotes.models import QuoteStatus
from invoicer.modules.receipts.models import Receipt


# ===== FIXTURES =====

@pytest.fixture
def acme(db_session, owner):
    return ClientService(db_session).create_client(owner.id, ClientCreate(business_name="Acme Inc"))


def _receipt_builder(session, owner_id):
    def build(number):
        receipt = Receipt(
            user_id=owner_id,
            client_id=uuid4(),
            receipt_number=number,
            amount=Decimal("10.00"),
            currency="USD"
        )
        session.add(receipt)
        session.flush()
        return receipt
    return build


# ===== TOTALES =====

class TestComputeTotals:
    """Tests del cálculo de subtotal, impuesto, descuento y total"""

    def test_subtotal_equals_sum_of_lines_random(self):
        """Con cantidades y precios no negativos el subtotal es la suma de q × p"""
        rng = random.Random(360)
        for _ in range(200):
            items = [
                {
                    "quantity": Decimal(rng.randint(0, 50000)) / 1000,
                    "unit_price": Decimal(rng.randint(0, 500000)) / 100,
                }
                for _ in range(rng.randint(0, 8))
            ]
            expected = sum((i["quantity"] * i["unit_price"] for i in items), Decimal("0"))
            assert compute_totals(items).subtotal == expected.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def test_fractional_quantities_rounded_once(self):
        # 1.5 × 0.05 = 0.075 por línea; redondear antes de sumar daría 0.16
        totals = compute_totals([{"quantity": 1.5, "unit_price": 0.05}] * 2)
        assert totals.subtotal == Decimal("0.15")
        assert totals.line_amounts == (Decimal("0.08"), Decimal("0.08"))

    def test_idempotent(self):
        rng = random.Random(7)
        items = [
            {
                "quantity": Decimal(rng.randint(1, 9)),
                "unit_price": Decimal(rng.randint(1, 99999)) / 100,
                "tax_rate": Decimal("0.19"),
            }
            for _ in range(5)
        ]
        first = compute_totals(items, tax_rate=Decimal("0.1"), discount_rate=Decimal("0.05"))
        second = compute_totals(items, tax_rate=Decimal("0.1"), discount_rate=Decimal("0.05"))
        assert first == second

    def test_input_items_not_modified(self):
        items = [{"quantity": 2, "unit_price": "100"}]
        compute_totals(items, tax_rate="0.1")
        assert items == [{"quantity": 2, "unit_price": "100"}]

    def test_tax_rate_on_subtotal(self):
        totals = compute_totals([{"quantity": 2, "unit_price": 100}], tax_rate=Decimal("0.1"))
        assert totals.subtotal == Decimal("200.00")
        assert totals.tax_amount == Decimal("20.00")
        assert totals.discount_amount == Decimal("0.00")
        assert totals.total == Decimal("220.00")

    def test_explicit_amounts_override_rates(self):
        totals = compute_totals(
            [{"quantity": 1, "unit_price": 100}],
            tax_rate=Decimal("0.5"),
            tax_amount=Decimal("3"),
            discount_rate=Decimal("0.5"),
            discount_amount=Decimal("1"),
        )
        assert totals.tax_amount == Decimal("3.00")
        assert totals.discount_amount == Decimal("1.00")
        assert totals.total == Decimal("102.00")

    def test_total_never_negative(self):
        totals = compute_totals([{"quantity": 1, "unit_price": 10}], discount_amount=Decimal("50"))
        assert totals.total == Decimal("0.00")

    def test_empty_items(self):
        totals = compute_totals([])
        assert totals.subtotal == totals.tax_amount == totals.total == Decimal("0.00")
        assert totals.line_amounts == ()

    def test_line_discount_then_tax(self):
        # 100 - 10% = 90; 90 + 19% = 107.10
        assert compute_line_amount(1, 100, tax_rate="0.19", discount_rate="0.1") == Decimal("107.10")

    def test_half_up_rounding(self):
        assert compute_line_amount(1, Decimal("0.125")) == Decimal("0.13")

    def test_accepts_objects(self):
        items = [SimpleNamespace(quantity=Decimal("3"), unit_price=Decimal("1.50"), tax_rate=None, discount_rate=None)]
        assert compute_totals(items).subtotal == Decimal("4.50")

    @pytest.mark.parametrize("kwargs", [
        {"tax_amount": Decimal("-1")},
        {"discount_amount": Decimal("-0.01")},
        {"tax_rate": Decimal("1.5")},
        {"discount_rate": Decimal("-0.1")},
    ])
    def test_invalid_document_values(self, kwargs):
        with pytest.raises(ValidationError):
            compute_totals([{"quantity": 1, "unit_price": 10}], **kwargs)

    def test_negative_line_values(self):
        with pytest.raises(ValidationError):
            compute_totals([{"quantity": -1, "unit_price": 10}])
        with pytest.raises(ValidationError):
            compute_totals([{"quantity": 1, "unit_price": "abc"}])


# ===== CICLO DE VIDA =====

class TestStatusLifecycle:
    """Tests de las tablas de transición"""

    def test_invoice_forward_path(self):
        invoice = SimpleNamespace(id=uuid4(), status=InvoiceStatus.DRAFT, due_date=None)
        INVOICE_LIFECYCLE.transition(invoice, InvoiceStatus.SENT)
        INVOICE_LIFECYCLE.transition(invoice, InvoiceStatus.VIEWED)
        INVOICE_LIFECYCLE.transition(invoice, InvoiceStatus.PAID)
        assert invoice.status == InvoiceStatus.PAID

    def test_paid_on_cancelled_invoice_fails_without_change(self):
        invoice = SimpleNamespace(id=uuid4(), status=InvoiceStatus.CANCELLED, due_date=None)
        with pytest.raises(InvalidTransition) as exc:
            INVOICE_LIFECYCLE.transition(invoice, InvoiceStatus.PAID)
        assert invoice.status == InvoiceStatus.CANCELLED
        assert exc.value.current == "cancelled"
        assert exc.value.target == "paid"

    def test_no_backward_transition(self):
        invoice = SimpleNamespace(id=uuid4(), status=InvoiceStatus.PAID, due_date=None)
        with pytest.raises(InvalidTransition):
            INVOICE_LIFECYCLE.transition(invoice, InvoiceStatus.SENT)
        assert invoice.status == InvoiceStatus.PAID

    def test_draft_cannot_be_paid_directly(self):
        assert not INVOICE_LIFECYCLE.can_transition(InvoiceStatus.DRAFT, InvoiceStatus.PAID)

    def test_terminal_states(self):
        assert INVOICE_LIFECYCLE.is_terminal(InvoiceStatus.PAID)
        assert INVOICE_LIFECYCLE.is_terminal(InvoiceStatus.CANCELLED)
        assert not INVOICE_LIFECYCLE.is_terminal(InvoiceStatus.OVERDUE)
        for status in (QuoteStatus.ACCEPTED, QuoteStatus.REJECTED, QuoteStatus.EXPIRED):
            assert QUOTE_LIFECYCLE.is_terminal(status)

    def test_overdue_requires_past_due_date(self):
        today = date(2025, 6, 15)
        invoice = SimpleNamespace(id=uuid4(), status=InvoiceStatus.SENT, due_date=today)
        with pytest.raises(InvalidTransition):
            INVOICE_LIFECYCLE.transition(invoice, InvoiceStatus.OVERDUE, today=today)
        assert invoice.status == InvoiceStatus.SENT

        INVOICE_LIFECYCLE.transition(invoice, InvoiceStatus.OVERDUE, today=today + timedelta(days=1))
        assert invoice.status == InvoiceStatus.OVERDUE

    def test_quote_expiry_requires_past_expiry_date(self):
        quote = SimpleNamespace(id=uuid4(), status=QuoteStatus.SENT, expiry_date=None)
        with pytest.raises(InvalidTransition):
            QUOTE_LIFECYCLE.transition(quote, QuoteStatus.EXPIRED)

        quote.expiry_date = date.today() - timedelta(days=1)
        QUOTE_LIFECYCLE.transition(quote, QuoteStatus.EXPIRED)
        assert quote.status == QuoteStatus.EXPIRED

    def test_quote_draft_only_goes_to_sent(self):
        assert QUOTE_LIFECYCLE.allowed_targets(QuoteStatus.DRAFT) == frozenset({QuoteStatus.SENT})


# ===== NUMERACIÓN =====

class TestDocumentNumbering:
    """Tests de generación y validación de números de documento"""

    def test_format(self):
        assert format_number(DocumentType.INVOICE, 12) == f"{settings.INVOICE_NUMBER_PREFIX}0012"
        assert format_number(DocumentType.RECEIPT, 1).startswith(settings.RECEIPT_NUMBER_PREFIX)

    def test_sequential_per_owner_and_type(self, db_session, owner, other_owner):
        numbering = DocumentNumberingService(db_session)
        first = numbering.create_with_number(
            owner.id, DocumentType.RECEIPT, None, _receipt_builder(db_session, owner.id), "crear recibo"
        )
        second = numbering.create_with_number(
            owner.id, DocumentType.RECEIPT, None, _receipt_builder(db_session, owner.id), "crear recibo"
        )
        other = numbering.create_with_number(
            other_owner.id, DocumentType.RECEIPT, None, _receipt_builder(db_session, other_owner.id), "crear recibo"
        )

        assert first.receipt_number == format_number(DocumentType.RECEIPT, 1)
        assert second.receipt_number == format_number(DocumentType.RECEIPT, 2)
        # Cada usuario tiene su propia secuencia
        assert other.receipt_number == format_number(DocumentType.RECEIPT, 1)
        assert numbering.peek_next_number(owner.id, DocumentType.RECEIPT) == format_number(DocumentType.RECEIPT, 3)

    def test_peek_does_not_reserve(self, db_session, owner):
        numbering = DocumentNumberingService(db_session)
        assert numbering.peek_next_number(owner.id, DocumentType.QUOTE) == format_number(DocumentType.QUOTE, 1)
        assert numbering.peek_next_number(owner.id, DocumentType.QUOTE) == format_number(DocumentType.QUOTE, 1)

    def test_generated_numbers_skip_explicit_ones(self, db_session, owner):
        numbering = DocumentNumberingService(db_session)
        taken = format_number(DocumentType.RECEIPT, 1)
        numbering.create_with_number(
            owner.id, DocumentType.RECEIPT, taken, _receipt_builder(db_session, owner.id), "crear recibo"
        )
        generated = numbering.create_with_number(
            owner.id, DocumentType.RECEIPT, None, _receipt_builder(db_session, owner.id), "crear recibo"
        )
        assert generated.receipt_number == format_number(DocumentType.RECEIPT, 2)

    def test_duplicate_explicit_number_conflicts(self, db_session, owner):
        numbering = DocumentNumberingService(db_session)
        numbering.create_with_number(
            owner.id, DocumentType.RECEIPT, "R-1", _receipt_builder(db_session, owner.id), "crear recibo"
        )
        with pytest.raises(ConflictError):
            numbering.create_with_number(
                owner.id, DocumentType.RECEIPT, "R-1", _receipt_builder(db_session, owner.id), "crear recibo"
            )
        assert db_session.query(Receipt).count() == 1

    def test_blank_explicit_number_rejected(self, db_session, owner):
        with pytest.raises(ValidationError):
            DocumentNumberingService(db_session).ensure_available(owner.id, DocumentType.INVOICE, "   ")

    def test_concurrent_generation_yields_distinct_numbers(self, tmp_path, monkeypatch):
        """N hilos, una sesión por hilo, misma base en archivo: ningún número repetido"""
        monkeypatch.setattr(settings, "DOCUMENT_NUMBER_MAX_ATTEMPTS", 100)
        engine = build_engine(f"sqlite:///{tmp_path / 'numbering.db'}")
        Base.metadata.create_all(bind=engine)
        Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)

        setup = Session()
        user = User(email="stress@example.com", password="x", is_active=True)
        setup.add(user)
        setup.commit()
        owner_id = user.id
        setup.close()

        threads_count, per_thread = 6, 5
        numbers, errors = [], []
        lock = threading.Lock()

        def worker():
            session = Session()
            try:
                numbering = DocumentNumberingService(session)
                for _ in range(per_thread):
                    receipt = numbering.create_with_number(
                        owner_id, DocumentType.RECEIPT, None, _receipt_builder(session, owner_id), "crear recibo"
                    )
                    with lock:
                        numbers.append(receipt.receipt_number)
            except Exception as e:
                with lock:
                    errors.append(e)
            finally:
                session.close()

        threads = [threading.Thread(target=worker) for _ in range(threads_count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        engine.dispose()

        assert errors == []
        assert len(numbers) == threads_count * per_thread
        assert len(set(numbers)) == len(numbers)


# ===== PDF =====

class TestPdfExport:
    """Tests del nombre de archivo y del render con reportlab"""

    @pytest.mark.parametrize("name,expected", [
        ("Acme Inc", "acme-inc"),
        ("  Café & Crème S.A.S. ", "cafe-creme-s-a-s"),
        ("", "client"),
        (None, "client"),
        ("***", "client"),
    ])
    def test_slugify(self, name, expected):
        assert slugify(name) == expected

    def test_filename_convention(self):
        assert document_filename("Acme Inc", DocumentType.INVOICE, "INV-0001") == "acme-inc-invoice-INV-0001.pdf"
        assert document_filename(None, DocumentType.QUOTE, "QT-0002") == "client-quote-QT-0002.pdf"

    def test_invoice_pdf_bytes(self, db_session, owner, acme):
        service = InvoiceService(db_session)
        invoice = service.create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id,
            notes="Gracias por su compra\nPago a 30 días",
            items=[{"description": "Diseño <web>", "quantity": 2, "unit_price": 100}]
        ))

        filename, pdf = service.export_pdf(owner.id, invoice.id)
        assert filename == f"acme-inc-invoice-{invoice.invoice_number}.pdf"
        assert pdf.startswith(b"%PDF")
