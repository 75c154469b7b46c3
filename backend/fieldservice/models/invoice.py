"""
Modelli SQLAlchemy per la Fatturazione
Progetto: Field Service Manager (Gestionale Interventi)

Contiene:
- Invoice: Fattura dell'intervento
- InvoiceLine: Righe della fattura
- Payment: Pagamenti registrati sulla fattura (solo in append)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fieldservice.models import Base
from fieldservice.models.mixins import TimestampMixin, UUIDMixin, utcnow
from fieldservice.services import billing_calculator

if TYPE_CHECKING:
    from fieldservice.models.job import Job


class Invoice(Base, UUIDMixin, TimestampMixin):
    """
    Modello per le fatture.

    Una fattura è generata una sola volta da un intervento COMPLETED.
    `paid_amount` è la somma progressiva dei pagamenti e viene modificato
    esclusivamente dal registro pagamenti.

    Attributes:
        id: UUID primary key
        job_id: UUID dell'intervento (1:1)
        status: Stato della fattura (UNPAID, PARTIALLY_PAID, PAID)
        subtotal: Imponibile (somma quantità * prezzo unitario)
        tax_rate: Aliquota applicata (frazione)
        tax: Imposta calcolata
        total_amount: Totale fattura (subtotal + tax)
        paid_amount: Totale incassato
        issued_at: Data/ora di emissione

    Relationships:
        job: Intervento associato
        lines: Righe della fattura (ordinate per line_number)
        payments: Pagamenti registrati (ordine di registrazione)
    """

    __tablename__ = "invoices"

    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        doc="UUID dell'intervento (relazione 1:1)",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="UNPAID",
        doc="Stato della fattura",
    )

    # ------------------------------------------------------------
    # Colonne Importi
    # ------------------------------------------------------------
    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Imponibile",
    )

    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 4),
        nullable=False,
        default=Decimal("0"),
        doc="Aliquota applicata (frazione, es. 0.1000)",
    )

    tax: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Imposta calcolata",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Totale fattura (subtotal + tax)",
    )

    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0.00"),
        doc="Totale incassato",
    )

    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        doc="Data/ora emissione",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    job: Mapped["Job"] = relationship(
        "Job",
        back_populates="invoice",
        doc="Intervento associato",
    )

    lines: Mapped[List["InvoiceLine"]] = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLine.line_number",
        lazy="selectin",
        doc="Righe della fattura",
    )

    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.paid_at",
        lazy="selectin",
        doc="Pagamenti registrati",
    )

    # ------------------------------------------------------------
    # Properties Calcolate
    # ------------------------------------------------------------
    @property
    def remaining_balance(self) -> Decimal:
        """Importo residuo da incassare."""
        return billing_calculator.remaining_balance(self)

    @property
    def can_pay(self) -> bool:
        """True se la fattura accetta ancora pagamenti."""
        return billing_calculator.can_pay(self)

    # ------------------------------------------------------------
    # Indici e Vincoli
    # ------------------------------------------------------------
    __table_args__ = (
        CheckConstraint(
            "status IN ('UNPAID', 'PARTIALLY_PAID', 'PAID')",
            name="ck_invoices_status",
        ),
        CheckConstraint("subtotal >= 0", name="ck_invoices_subtotal_positive"),
        CheckConstraint("tax >= 0", name="ck_invoices_tax_positive"),
        CheckConstraint(
            "paid_amount >= 0 AND paid_amount <= total_amount",
            name="ck_invoices_paid_amount_range",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Invoice(id={self.id}, status={self.status}, "
            f"total={self.total_amount}, paid={self.paid_amount})>"
        )


class InvoiceLine(Base, UUIDMixin, TimestampMixin):
    """
    Modello per le righe della fattura.

    Attributes:
        invoice_id: UUID della fattura padre
        line_number: Posizione della riga (1-based, ordine della richiesta)
        description: Descrizione della riga
        quantity: Quantità (intero positivo)
        unit_price: Prezzo unitario (>= 0)
    """

    __tablename__ = "invoice_lines"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="UUID della fattura padre",
    )

    line_number: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Numero progressivo riga nella fattura",
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        doc="Descrizione della riga",
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Quantità",
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Prezzo unitario",
    )

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="lines",
        doc="Fattura padre",
    )

    @property
    def line_total(self) -> Decimal:
        """Totale riga (quantity * unit_price)."""
        return billing_calculator.line_total(self)

    __table_args__ = (
        Index("ix_invoice_lines_invoice_number", "invoice_id", "line_number", unique=True),
        CheckConstraint("quantity > 0", name="ck_invoice_lines_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_lines_unit_price_positive"),
    )

    def __repr__(self) -> str:
        return f"<InvoiceLine(#{self.line_number}, description={self.description[:30]}...)>"


class Payment(Base, UUIDMixin, TimestampMixin):
    """
    Modello per i pagamenti registrati su una fattura.

    I pagamenti sono solo in append: non esistono storni nel core.

    Attributes:
        invoice_id: UUID della fattura
        amount: Importo pagato (> 0)
        method: Metodo di pagamento (Card, Bank Transfer, Cash)
        paid_at: Data/ora del pagamento
    """

    __tablename__ = "payments"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
        doc="UUID della fattura",
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        doc="Importo del pagamento",
    )

    method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Metodo di pagamento",
    )

    paid_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        doc="Data/ora del pagamento",
    )

    invoice: Mapped["Invoice"] = relationship(
        "Invoice",
        back_populates="payments",
        doc="Fattura pagata",
    )

    __table_args__ = (
        Index("ix_payments_invoice_id", "invoice_id"),
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "method IN ('Card', 'Bank Transfer', 'Cash')",
            name="ck_payments_method",
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, method={self.method})>"
