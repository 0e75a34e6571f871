# Overview: Per-tenant document number formats (prefix, separator, digit width).

from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..models import InvoiceNumberingConfig
from ..validation import ValidationError, parse_positive_int
from .concurrency import lock_for_update, run_with_retry


DEFAULT_SEPARATOR = "-"
DEFAULT_DIGIT_WIDTH = 3
MAX_DIGIT_WIDTH = 12

# Document types with a system default prefix. Anything else must be
# configured per tenant before it can be numbered.
DEFAULT_PREFIXES = {
    "PO": "PO",
    "GRN": "GRN",
    "INVOICE": "INV",
    "ESTIMATE": "EST",
    "CREDIT_NOTE": "CN",
    "DEBIT_NOTE": "DN",
    "SALES_ORDER": "SO",
    "PO_RETURN": "POR",
    "CONTRACT": "CONT",
}


class UnknownDocumentTypeError(Exception):
    """Numbering requested for a type with no tenant config and no default."""
    pass


@dataclass(frozen=True)
class NumberingFormat:
    document_type: str
    prefix: str
    separator: str
    digit_width: int
    is_default: bool = False

    def render(self, sequence: int) -> str:
        """
        prefix + separator + zero-padded sequence.

        Sequences wider than digit_width are printed in full, never cut down.
        """
        if sequence < 1:
            raise ValueError("sequence must be >= 1")
        return f"{self.prefix}{self.separator}{sequence:0{self.digit_width}d}"

    def to_dict(self) -> dict:
        return {
            "document_type": self.document_type,
            "prefix": self.prefix,
            "separator": self.separator,
            "digit_width": self.digit_width,
            "is_default": self.is_default,
        }


def normalize_document_type(document_type: str | None) -> str:
    normalized = (document_type or "").strip().upper().replace("-", "_")
    if not normalized:
        raise UnknownDocumentTypeError("document_type is required")
    return normalized


def default_format(document_type: str) -> NumberingFormat:
    document_type = normalize_document_type(document_type)
    prefix = DEFAULT_PREFIXES.get(document_type)
    if prefix is None:
        raise UnknownDocumentTypeError(f"No numbering configured for document type {document_type}")
    return NumberingFormat(
        document_type=document_type,
        prefix=prefix,
        separator=DEFAULT_SEPARATOR,
        digit_width=DEFAULT_DIGIT_WIDTH,
        is_default=True,
    )


def get_numbering_format(tenant_id: int, document_type: str) -> NumberingFormat:
    """Tenant's configured format, else the default, else UnknownDocumentTypeError."""
    document_type = normalize_document_type(document_type)
    config = (
        db.session.query(InvoiceNumberingConfig)
        .filter_by(tenant_id=tenant_id, document_type=document_type)
        .first()
    )
    if config is None:
        return default_format(document_type)
    return NumberingFormat(
        document_type=document_type,
        prefix=config.prefix,
        separator=config.separator,
        digit_width=config.digit_width,
    )


def list_numbering_formats(tenant_id: int) -> list[NumberingFormat]:
    """Effective formats: every default type plus any tenant-only types."""
    configured = {
        c.document_type: c
        for c in db.session.query(InvoiceNumberingConfig).filter_by(tenant_id=tenant_id).all()
    }
    types = sorted(set(DEFAULT_PREFIXES) | set(configured))
    return [get_numbering_format(tenant_id, t) for t in types]


def set_numbering_config(
    tenant_id: int,
    document_type: str,
    *,
    prefix: str,
    separator: str | None = None,
    digit_width=None,
) -> InvoiceNumberingConfig:
    document_type = normalize_document_type(document_type)

    prefix = (prefix or "").strip()
    if not prefix:
        raise ValidationError("prefix is required")
    if len(prefix) > 32:
        raise ValidationError("prefix exceeds max length 32")

    if separator is None:
        separator = DEFAULT_SEPARATOR
    if len(separator) > 8:
        raise ValidationError("separator exceeds max length 8")

    if digit_width is None:
        digit_width = DEFAULT_DIGIT_WIDTH
    digit_width = parse_positive_int(digit_width, "digit_width")
    if digit_width > MAX_DIGIT_WIDTH:
        raise ValidationError(f"digit_width cannot exceed {MAX_DIGIT_WIDTH}")

    def _op():
        config = lock_for_update(
            db.session.query(InvoiceNumberingConfig).filter_by(
                tenant_id=tenant_id, document_type=document_type
            )
        ).first()
        if config:
            config.prefix = prefix
            config.separator = separator
            config.digit_width = digit_width
        else:
            config = InvoiceNumberingConfig(
                tenant_id=tenant_id,
                document_type=document_type,
                prefix=prefix,
                separator=separator,
                digit_width=digit_width,
            )
            db.session.add(config)

        db.session.commit()
        return config

    return run_with_retry(_op)
